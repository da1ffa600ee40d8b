"""Demo components — a counter, a templated greeting, and a keyed todo list."""

from __future__ import annotations

import html
from typing import ClassVar

from diffyne import Component, Locked, invokable


class Counter(Component):
    count: int = 0
    step: Locked[int] = 1

    @invokable
    def increment(self) -> None:
        self.count += self.step

    @invokable
    def reset_count(self) -> None:
        self.reset("count")

    def render(self) -> str:
        return (
            f'<div class="counter"><span>{self.count}</span>'
            f'<button diff:click="increment">+1</button>'
            f'<button diff:click="reset_count">reset</button></div>'
        )


class Greeting(Component):
    template: ClassVar[str | None] = "greeting.html"

    name: str = "world"


class TodoList(Component):
    """Items are keyed, so removing one never re-renders its neighbours."""

    items: list = []
    draft: str = ""
    next_id: Locked[int] = 1

    @invokable
    def add(self) -> None:
        text = self.draft.strip()
        if not text:
            self.add_error("draft", "Type something first.")
            return
        self.items = [*self.items, {"id": self.next_id, "text": text}]
        self.next_id += 1
        self.draft = ""

    @invokable
    def remove(self, item_id: int) -> None:
        self.items = [item for item in self.items if item["id"] != item_id]

    def render(self) -> str:
        rows = "".join(
            f'<li diff:key="todo-{item["id"]}">{html.escape(item["text"])}'
            f'<button diff:click="remove" diff:args="[{item["id"]}]">x</button></li>'
            for item in self.items
        )
        errors = "".join(
            f'<p class="error">{html.escape(message)}</p>'
            for message in self.errors.get("draft")
        )
        return (
            f'<div class="todos"><input diff:model="draft" value="{html.escape(self.draft)}">'
            f'<button diff:click="add">Add</button>{errors}<ul>{rows}</ul></div>'
        )
