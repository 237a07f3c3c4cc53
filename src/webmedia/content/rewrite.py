from __future__ import annotations

from ..models import PresentationOptions

VIEWPORT_TOKEN = "[[ViewPortWidth]]"
HEAD_CLOSE = "</head>"


def needs_rewrite(markup: str) -> bool:
    return VIEWPORT_TOKEN in markup


def build_body_style(presentation: PresentationOptions) -> str:
    color = presentation.background_color
    if not presentation.background_image:
        return f"background-color:{color} ;"
    image = presentation.background_image.replace("\\", "/")
    return (
        f"background-image: url('{image}'); background-attachment:fixed; "
        f"background-color:{color}; background-repeat: no-repeat; "
        f"background-position: {presentation.background_left}px {presentation.background_top}px;"
    )


def rewrite(markup: str, presentation: PresentationOptions, force: bool = False) -> str:
    """Inject the body style block and resolve the viewport width token.

    Without ``force`` the markup is only touched while it still carries the
    viewport token, so content written by an earlier run is left alone.
    """
    if not force and not needs_rewrite(markup):
        return markup

    style_block = f"<style type='text/css'>body {{{build_body_style(presentation)} }}</style>"
    html = markup.replace(HEAD_CLOSE, style_block + HEAD_CLOSE)
    return html.replace(VIEWPORT_TOKEN, str(presentation.viewport_width))
