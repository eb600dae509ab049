"""Operator login modal screen."""

from __future__ import annotations

from typing import Callable

from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Container
from textual.events import Key
from textual.screen import ModalScreen
from textual.widgets import Static


class LoginModal(ModalScreen[bool]):
    """Prompt for the operator username and password."""

    CSS = """
    LoginModal {
        align: center middle;
        background: $background 60%;
    }

    #login-dialog {
        width: 56;
        height: auto;
        border: round $secondary;
        background: $panel;
        padding: 1 2;
    }

    #login-title {
        text-style: bold;
        margin-bottom: 1;
        color: white;
    }

    #login-fields {
        border: heavy $secondary;
        padding: 0 1;
        color: white;
        margin-bottom: 1;
    }

    #login-error {
        color: #ffb3b3;
        margin-bottom: 1;
    }

    #login-help {
        color: #dddddd;
    }
    """

    def __init__(self, check: Callable[[str, str], bool]) -> None:
        super().__init__()
        self.check = check
        self.username = ""
        self.password = ""
        self.on_password = False
        self.error = ""

    def compose(self) -> ComposeResult:
        with Container(id="login-dialog"):
            yield Static("Operator Login", id="login-title")
            yield Static(id="login-fields")
            yield Static(id="login-error")
            yield Static("Up/Down switch field. Enter confirm. Esc quit.", id="login-help")

    def on_mount(self) -> None:
        self._refresh_content()

    def on_key(self, event: Key) -> None:
        if event.key in {"escape", "ctrl+c"}:
            self.dismiss(False)
            event.stop()
            return

        if event.key == "enter":
            self._confirm()
        elif event.key in {"up", "down"}:
            self.on_password = not self.on_password
        elif event.key == "backspace":
            if self.on_password:
                self.password = self.password[:-1]
            else:
                self.username = self.username[:-1]
        elif event.is_printable and event.character:
            if self.on_password:
                self.password += event.character
            else:
                self.username += event.character
        else:
            return
        event.stop()
        self._refresh_content()

    def _confirm(self) -> None:
        if self.check(self.username, self.password):
            self.dismiss(True)
            return
        self.error = "Wrong username or password."
        self.password = ""

    def _refresh_content(self) -> None:
        user_pointer = "  " if self.on_password else "➤ "
        pass_pointer = "➤ " if self.on_password else "  "
        self.query_one("#login-fields", Static).update(
            Text(f"{user_pointer}Username: {self.username}\n{pass_pointer}Password: {'*' * len(self.password)}")
        )
        self.query_one("#login-error", Static).update(Text(self.error))
