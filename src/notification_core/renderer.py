"""Jinja2 rendering for plain-text notification subjects and bodies."""

from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from jinja2 import StrictUndefined, Template
from jinja2.sandbox import SandboxedEnvironment

# SMS, push and text email: no HTML escaping.
_env = SandboxedEnvironment(
    autoescape=False,
    undefined=StrictUndefined,
    keep_trailing_newline=False,
    trim_blocks=True,
)


@dataclass(frozen=True, slots=True)
class RenderedMessage:
    subject: str
    body: str


@lru_cache(maxsize=128)
def _compile(template_str: str) -> Template:
    return _env.from_string(template_str)


def _as_text(value: Any) -> str:
    return "" if value is None else str(value)


def render_template(template_str: str, context: dict[str, Any]) -> str:
    """Render one template string against *context*.

    Values are stringified first and ``None`` renders as empty text;
    surrounding whitespace is stripped from the result.
    Missing variables raise ``jinja2.UndefinedError``; the sandbox raises
    ``SecurityError`` on attribute escapes.
    """
    text_context = {k: _as_text(v) for k, v in context.items()}
    return _compile(template_str).render(text_context).strip()


def render_message(
    subject_template: str, body_template: str, context: dict[str, Any]
) -> RenderedMessage:
    return RenderedMessage(
        subject=render_template(subject_template, context),
        body=render_template(body_template, context),
    )
