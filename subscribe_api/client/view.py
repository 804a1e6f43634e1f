from __future__ import annotations

import html
from dataclasses import dataclass, field

LOADING_LABEL = "PROCESSING..."
SUBSCRIBED_LABEL = "SUBSCRIBED"
_LOADING_CLASSES = ("opacity-50", "cursor-not-allowed")

SUCCESS_ICON = "fa-solid fa-check mr-2"
ERROR_ICON = "fa-solid fa-exclamation-circle mr-2"


@dataclass
class TextInput:
    value: str = ""


@dataclass
class SubmitButton:
    label: str
    disabled: bool = False
    classes: set[str] = field(default_factory=set)


@dataclass
class StatusMessage:
    """Inline status line under the form.

    ``text`` is always plain text; ``render_html`` escapes it, so server
    supplied strings can never inject markup.
    """

    kind: str | None = None
    icon: str | None = None
    text: str = ""
    hidden: bool = True

    def show(self, kind: str, text: str) -> None:
        self.kind = kind
        self.icon = SUCCESS_ICON if kind == "success" else ERROR_ICON
        self.text = text
        self.hidden = False

    def hide(self) -> None:
        self.hidden = True

    def render_html(self) -> str:
        if self.hidden:
            return ""
        color = "text-green-400" if self.kind == "success" else "text-red-400"
        icon = f'<i class="{html.escape(self.icon or "", quote=True)}"></i>'
        return f'<div class="{color}">{icon}{html.escape(self.text)}</div>'


@dataclass
class SubscribeForm:
    """Desktop and mobile layouts share one logical form and its buttons."""

    desktop_email: TextInput = field(default_factory=TextInput)
    mobile_email: TextInput = field(default_factory=TextInput)
    honeypot: TextInput = field(default_factory=TextInput)
    buttons: list[SubmitButton] = field(default_factory=list)
    message: StatusMessage = field(default_factory=StatusMessage)

    def sync_inputs(self, source: TextInput) -> None:
        for target in (self.desktop_email, self.mobile_email):
            if target is not source:
                target.value = source.value

    def current_email(self) -> str:
        return (self.desktop_email.value or self.mobile_email.value).strip()

    def clear_inputs(self) -> None:
        self.desktop_email.value = ""
        self.mobile_email.value = ""

    def set_buttons_loading(self) -> list[str]:
        original_labels: list[str] = []
        for button in self.buttons:
            original_labels.append(button.label)
            button.label = LOADING_LABEL
            button.disabled = True
            button.classes.update(_LOADING_CLASSES)
        return original_labels

    def set_buttons_success(self) -> None:
        for button in self.buttons:
            button.label = SUBSCRIBED_LABEL

    def reset_buttons(self, original_labels: list[str]) -> None:
        for button, label in zip(self.buttons, original_labels):
            button.label = label
            button.disabled = False
            button.classes.difference_update(_LOADING_CLASSES)
