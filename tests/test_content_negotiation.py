"""
Tests for the response pipeline: content negotiation, render hooks and
error bodies.
"""

from restnest import API, DefaultResource, Response, Router, handler, set_status
from restnest.models import HTTPMethod, Request
from restnest.template_helpers import must_render_html_map
from restnest.testing import MultiDriverTestBase

PAGE_TEMPLATES = {
    "page": "<h1>{{ data.title }}</h1>",
}


class Page(DefaultResource):
    title: str = ""

    def html(self, request):
        return must_render_html_map(PAGE_TEMPLATES, "page", self)


class Fragile(DefaultResource):
    broken: bool = False
    rendered_for: str = ""

    def render(self, request):
        if self.broken:
            raise ValueError("cannot render")
        self.rendered_for = request.method.value


class TestHtmlNegotiation(MultiDriverTestBase):

    def create_app(self):
        return API("pages", "/pages", Page)

    def test_html_when_accepted(self, api):
        api_client, driver_name = api
        page_id = api_client.create_resource("/pages", {"title": "Hello"}).get_json_body()["id"]

        response = api_client.get_as_html(f"/pages/{page_id}")
        assert response.status_code == 200
        assert response.content_type.startswith("text/html")
        assert response.get_text_body() == "<h1>Hello</h1>"

    def test_json_by_default(self, api):
        api_client, driver_name = api
        page_id = api_client.create_resource("/pages", {"title": "Hello"}).get_json_body()["id"]

        response = api_client.execute(api_client.get(f"/pages/{page_id}"))
        assert response.content_type == "application/json"
        assert response.get_json_body()["title"] == "Hello"

    def test_first_recognized_accept_wins(self, api):
        api_client, driver_name = api
        page_id = api_client.create_resource("/pages", {"title": "Hello"}).get_json_body()["id"]

        request = api_client.get(f"/pages/{page_id}").accepts("application/xml, text/html;q=0.9, application/json")
        assert api_client.execute(request).content_type.startswith("text/html")

    def test_lists_fall_back_to_json(self, api):
        api_client, driver_name = api
        api_client.create_resource("/pages", {"title": "Hello"})

        response = api_client.get_as_html("/pages")
        assert response.content_type == "application/json"
        assert len(response.get_json_body()["items"]) == 1

    def test_errors_are_json(self, api):
        api_client, driver_name = api

        response = api_client.get_as_html("/pages/missing")
        assert response.content_type == "application/json"
        assert response.get_json_body() == {"status": "Resource not found."}


class TestRenderHooks(MultiDriverTestBase):

    def create_app(self):
        return API("fragile", "/fragile", Fragile)

    def test_render_hook_runs_before_serializing(self, api):
        api_client, driver_name = api

        created = api_client.expect_successful_creation(api_client.create_resource("/fragile", {}))
        assert created["rendered_for"] == "POST"

        listing = api_client.expect_successful_retrieval(api_client.get_resource("/fragile"))
        assert listing["items"][0]["rendered_for"] == "GET"

    def test_render_failure_is_422(self, api):
        api_client, driver_name = api

        data = api_client.expect_render_error(api_client.create_resource("/fragile", {"broken": True}))
        assert data["error"] == "cannot render"


class TestCustomStatus(MultiDriverTestBase):

    def create_app(self):
        router = Router()

        def accept_job(request):
            set_status(request, 202)
            return {"queued": True}

        router.post("/jobs", handler(accept_job))
        router.get("/raw", handler(lambda request: Response(418, body="teapot", content_type="text/plain")))
        return router

    def test_status_from_context(self, api):
        api_client, driver_name = api

        response = api_client.execute(api_client.post("/jobs"))
        assert response.status_code == 202
        assert response.get_json_body() == {"queued": True}

    def test_response_passthrough(self, api):
        api_client, driver_name = api

        response = api_client.execute(api_client.get("/raw"))
        assert response.status_code == 418
        assert response.get_text_body() == "teapot"


class TestResponder:

    def test_custom_respond_function(self):
        router = API("pages", "/pages", Page).router()

        def respond(request, value, status_code):
            return Response(status_code, body=f"custom {status_code}", content_type="text/plain")

        router.responder.install(respond)
        response = router(Request(method=HTTPMethod.GET, path="/pages"))
        # The first install wins unless replaced
        assert response.headers["Content-Type"] == "application/json"

        router.responder.install(respond, replace=True)
        response = router(Request(method=HTTPMethod.GET, path="/pages"))
        assert response.body == "custom 200"

    def test_responder_is_injected_into_context(self):
        seen = {}
        router = Router()

        def capture(request):
            seen["responder"] = request.context.get("restnest.responder")
            return Response(204)

        router.get("/", capture)
        router(Request(method=HTTPMethod.GET, path="/"))
        assert seen["responder"] is router.responder
