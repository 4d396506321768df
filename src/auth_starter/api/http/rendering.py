"""Server-side page rendering with Jinja2."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, select_autoescape
from starlette.responses import HTMLResponse

TEMPLATES_DIR = Path(__file__).resolve().parent.parent.parent / "templates"


class PageRenderer:
    """Renders page and account templates to HTML responses."""

    def __init__(
        self,
        templates_dir: Path | None = None,
        app_name: str = "auth-starter",
        interactive_server: bool = True,
    ) -> None:
        self.templates_dir = templates_dir or TEMPLATES_DIR
        self.env = Environment(
            loader=FileSystemLoader(str(self.templates_dir)),
            autoescape=select_autoescape(["html"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.globals["app_name"] = app_name
        # Pages reflect the authentication state of each request and must not be cached
        self.interactive_server = interactive_server

    def render(self, template_name: str, **context: Any) -> str:
        return self.env.get_template(template_name).render(**context)

    def response(
        self,
        template_name: str,
        status_code: int = 200,
        headers: dict[str, str] | None = None,
        **context: Any,
    ) -> HTMLResponse:
        headers = dict(headers or {})
        if self.interactive_server:
            headers.setdefault("Cache-Control", "no-store")
        return HTMLResponse(
            self.render(template_name, **context),
            status_code=status_code,
            headers=headers,
        )
