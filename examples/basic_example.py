#!/usr/bin/env python3
"""
Example: a single resource type served in-process.

Shows the default CRUD routes, a status code override, a create hook and the
request logging added to every top-level API.
"""

import json
import logging

from restnest import API, DefaultResource, HTTPMethod, InvalidRequestError, Request


class Book(DefaultResource):
    title: str = ""
    author: str = ""

    def patch(self, other: "Book") -> None:
        if other.title:
            self.title = other.title
        if other.author:
            self.author = other.author


def require_title(request, book: Book) -> None:
    if not book.title:
        raise InvalidRequestError(ValueError("title is required"))


def create_app():
    books = API("books", "/books", Book)
    books.set_on_create_or_update(require_title)
    books.set_custom_response_code(HTTPMethod.DELETE, 200)
    return books.router()


def call(app, method, path, body=None):
    request = Request(
        method=HTTPMethod(method),
        path=path,
        headers={"Content-Type": "application/json"},
        body=body,
    )
    response = app(request)
    print(f"{method} {path} -> {response.status_code} {response.body_bytes().decode('utf-8')}")
    return response


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    app = create_app()

    created = call(app, "POST", "/books", '{"title": "Dune", "author": "Herbert"}')
    book_id = json.loads(created.body_bytes())["id"]

    call(app, "GET", "/books")
    call(app, "PATCH", f"/books/{book_id}", '{"title": "Dune Messiah"}')
    call(app, "POST", "/books", '{"author": "Nobody"}')
    call(app, "PUT", f"/books/{book_id}", '{"id": "another-id", "title": "x"}')
    call(app, "DELETE", f"/books/{book_id}")
    call(app, "GET", f"/books/{book_id}")
