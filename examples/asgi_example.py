"""
Example: nested resources with HTML views, served over ASGI.

Lists contain todos; each todo lives under its list. Browsers asking for
``text/html`` get rendered templates, everything else gets JSON.

Run with:
    uvicorn examples.asgi_example:app --reload
"""

from restnest import API, ASGIAdapter, DefaultResource, get_resource, handler
from restnest.template_helpers import must_render_html_map

TEMPLATES = {
    "todo": "<li>{% if data.done %}<s>{{ data.title }}</s>{% else %}{{ data.title }}{% endif %}</li>",
    "list": "<h1>{{ data.name }}</h1>",
}


class TodoList(DefaultResource):
    name: str = ""

    def html(self, request):
        return must_render_html_map(TEMPLATES, "list", self)


class Todo(DefaultResource):
    title: str = ""
    done: bool = False
    list_id: str = ""

    def patch(self, other: "Todo") -> None:
        if other.title:
            self.title = other.title
        self.done = other.done

    def html(self, request):
        return must_render_html_map(TEMPLATES, "todo", self)


lists = API("lists", "/lists", TodoList)
todos = API("todos", "/todos", Todo)

todos.set_on_create_or_update(lambda request, todo: setattr(todo, "list_id", todos.get_parent_id_param(request)))
todos.set_get_all_filter(lambda request: lambda todo: todo.list_id == todos.get_parent_id_param(request))
todos.add_custom_id_route(
    "GET",
    "/list",
    handler(lambda request: get_resource(request, "lists")),
)

lists.add_nested_api(todos)
lists.add_custom_root_route("GET", "/health", handler(lambda request: {"healthy": True}))

app = ASGIAdapter(lists)
