"""Shared test fixtures for diffyne."""

from __future__ import annotations

import html
import json
from typing import Any

import pytest

from diffyne._errors import ValidationError
from diffyne.component import Component, ComponentRegistry, Locked, invokable
from diffyne.observability import EventLog, StackCollector
from diffyne.protocol import RequestPipeline
from diffyne.state import StateCodec

SECRET = "test-secret-key-0123456789abcdefghijklmnop"

POSTS = [{"id": i, "title": f"Post {i}"} for i in range(1, 8)]


def browser_round_trip(payload: Any) -> Any:
    """What the client script posts back: ``JSON.stringify(JSON.parse(body))``.

    JavaScript has one number type, so integral floats lose their fraction.
    """

    def js_numbers(value: Any) -> Any:
        if isinstance(value, float) and value.is_integer():
            return int(value)
        if isinstance(value, dict):
            return {key: js_numbers(item) for key, item in value.items()}
        if isinstance(value, list):
            return [js_numbers(item) for item in value]
        return value

    return json.loads(json.dumps(js_numbers(json.loads(json.dumps(payload)))))


# ---------------------------------------------------------------------------
# Sample components
# ---------------------------------------------------------------------------


class Counter(Component):
    count: int = 0
    step: Locked[int] = 1

    @invokable
    def increment(self) -> None:
        self.count += self.step

    @invokable
    def add(self, amount: int) -> None:
        self.count += amount

    def render(self) -> str:
        return (
            f'<div class="counter"><span>{self.count}</span>'
            f'<button diff:click="increment">+</button></div>'
        )


class PostList(Component):
    """Paginated list; the client may move pages but never edit posts."""

    page: int = 1
    per_page: Locked[int] = 3
    posts: Locked[list] = []
    total: Locked[int] = 0

    def mount(self, **params: Any) -> None:
        super().mount(**params)
        self._load()

    def updated_page(self, value: int) -> None:
        if value < 1:
            raise ValidationError({"page": "The page must be at least 1."})
        self._load()

    def _load(self) -> None:
        start = (self.page - 1) * self.per_page
        self.posts = POSTS[start:start + self.per_page]
        self.total = len(POSTS)

    @invokable
    def next_page(self) -> None:
        self.page += 1

    def render(self) -> str:
        pages = -(-self.total // self.per_page)
        items = "".join(
            f'<li diff:key="post-{post["id"]}">{html.escape(post["title"])}</li>'
            for post in self.posts
        )
        return f"<div><p>Page {self.page} of {pages}</p><ul>{items}</ul></div>"


class ContactForm(Component):
    name: str = ""
    email: str = ""
    sent: bool = False

    @invokable
    def submit(self) -> None:
        self.sent = True
        self.dispatch("contact-sent", name=self.name)
        self.validate({"name": "required|min:2", "email": "required|email"})
        self.redirect("/thanks")

    def render(self) -> str:
        errors = "".join(
            f'<p class="error">{html.escape(self.errors.first(field) or "")}</p>'
            for field in ("name", "email")
            if self.errors.has(field)
        )
        status = "<p>Thanks!</p>" if self.sent else ""
        return (
            f'<form diff:submit="submit">'
            f'<input name="name" value="{html.escape(self.name)}">'
            f'<input name="email" value="{html.escape(self.email)}">'
            f"{errors}{status}</form>"
        )


class TodoList(Component):
    items: list = []
    draft: str = ""

    @invokable
    def add(self) -> None:
        if not self.draft:
            self.add_error("draft", "Type something first.")
            return
        next_id = max((item["id"] for item in self.items), default=0) + 1
        self.items = [*self.items, {"id": next_id, "text": self.draft}]
        self.draft = ""

    @invokable
    def remove(self, item_id: int) -> None:
        self.items = [item for item in self.items if item["id"] != item_id]

    @invokable
    def reverse(self) -> None:
        self.items = list(reversed(self.items))

    def render(self) -> str:
        items = "".join(
            f'<li diff:key="todo-{item["id"]}">{html.escape(item["text"])}</li>'
            for item in self.items
        )
        return f"<ul>{items}</ul>"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def registry() -> ComponentRegistry:
    """Registry with the sample components."""
    reg = ComponentRegistry()
    for cls in (Counter, PostList, ContactForm, TodoList):
        reg.register(cls)
    return reg


@pytest.fixture
def codec() -> StateCodec:
    return StateCodec(SECRET)


@pytest.fixture
def collector() -> StackCollector:
    return StackCollector(EventLog(max_events=1000))


@pytest.fixture
def pipeline(
    registry: ComponentRegistry,
    codec: StateCodec,
    collector: StackCollector,
) -> RequestPipeline:
    """Pipeline that renders through ``render()`` and self-checks patches."""
    return RequestPipeline(registry, codec, collector=collector, verify_patches=True)
