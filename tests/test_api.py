"""Tests for assembling API trees."""

from concurrent.futures import ThreadPoolExecutor

import pytest

from restnest import API, DefaultResource, Router, handler
from restnest.exceptions import APIConfigurationError, RouteConflictError


class Item(DefaultResource):
    pass


def noop(request):
    return None


class TestNesting:

    def test_child_name_cannot_repeat_parent(self):
        parent = API("items", "/items", Item)
        with pytest.raises(APIConfigurationError):
            parent.add_nested_api(API("items", "/more-items", Item))

    def test_child_name_cannot_repeat_ancestor(self):
        grandparent = API("a", "/a", Item)
        parent = API("b", "/b", Item)
        grandparent.add_nested_api(parent)

        with pytest.raises(APIConfigurationError):
            parent.add_nested_api(API("a", "/again", Item))

    def test_child_has_one_parent(self):
        child = API("child", "/child", Item)
        API("one", "/one", Item).add_nested_api(child)

        with pytest.raises(APIConfigurationError):
            API("two", "/two", Item).add_nested_api(child)

    def test_nesting_sets_parent(self):
        parent = API("a", "/a", Item)
        child = API("b", "/b", Item)
        assert parent.add_nested_api(child) is parent
        assert child.parent is parent
        assert parent.children == [child]


class TestCustomRoutes:

    def test_duplicate_in_scope_is_rejected(self):
        api = API("items", "/items", Item).add_custom_route("GET", "/count", handler(noop))
        with pytest.raises(RouteConflictError):
            api.add_custom_route("get", "count", handler(noop))

    def test_same_pattern_in_different_scopes(self):
        api = API("items", "/items", Item)
        api.add_custom_route("GET", "/stats", handler(noop))
        api.add_custom_id_route("GET", "/stats", handler(noop))
        api.add_custom_root_route("GET", "/stats", handler(noop))

        routes = api.router().get_all_routes()
        assert ("GET", "/stats") in routes
        assert ("GET", "/items/stats") in routes
        assert ("GET", "/items/{itemsID}/stats") in routes

    def test_custom_route_colliding_with_default_route(self):
        api = API("items", "/items", Item).add_custom_route("GET", "/", handler(noop))
        with pytest.raises(RouteConflictError):
            api.router()


class TestRouting:

    def test_default_routes(self):
        parent = API("shops", "/shops", Item)
        parent.add_nested_api(API("widgets", "/widgets", Item))

        routes = set(parent.router().get_all_routes())
        assert routes == {
            ("POST", "/shops"),
            ("GET", "/shops"),
            ("GET", "/shops/{shopsID}"),
            ("DELETE", "/shops/{shopsID}"),
            ("PUT", "/shops/{shopsID}"),
            ("PATCH", "/shops/{shopsID}"),
            ("POST", "/shops/{shopsID}/widgets"),
            ("GET", "/shops/{shopsID}/widgets"),
            ("GET", "/shops/{shopsID}/widgets/{widgetsID}"),
            ("DELETE", "/shops/{shopsID}/widgets/{widgetsID}"),
            ("PUT", "/shops/{shopsID}/widgets/{widgetsID}"),
            ("PATCH", "/shops/{shopsID}/widgets/{widgetsID}"),
        }

    def test_route_on_existing_router(self):
        router = Router()
        router.get("/status", handler(noop))

        API("a", "/a", Item).route(router)
        API("b", "/b", Item).route(router)

        routes = router.get_all_routes()
        assert ("GET", "/status") in routes
        assert ("GET", "/a/{aID}") in routes
        assert ("GET", "/b/{bID}") in routes

    def test_route_installs_responder_once(self):
        router = Router()
        assert not router.responder.installed

        API("a", "/a", Item).route(router)
        respond = router.responder._respond
        API("b", "/b", Item).route(router)

        assert router.responder.installed
        assert router.responder._respond is respond

    def test_concurrent_routing_installs_responder_once(self):
        router = Router()
        installed = []
        original_install = router.responder.install

        def recording_install(*args, **kwargs):
            original_install(*args, **kwargs)
            installed.append(router.responder._respond)

        router.responder.install = recording_install
        apis = [API(f"items{i}", f"/items{i}", Item) for i in range(20)]

        with ThreadPoolExecutor(max_workers=20) as pool:
            list(pool.map(lambda api: api.route(router), apis))

        assert len(installed) == 20
        assert len(set(map(id, installed))) == 1
        assert ("GET", "/items19/{items19ID}") in router.get_all_routes()

    def test_base_is_normalized(self):
        assert API("items", "items", Item).base == "/items"
