"""
Minimal HTML pages: loading page for /install, result pages for /callback and errors.
"""
import html

from fastapi.responses import HTMLResponse


def message_page(title: str, message: str, status_code: int = 200) -> HTMLResponse:
    return HTMLResponse(
        f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>{html.escape(title)}</title></head>
<body>
  <h1>{html.escape(title)}</h1>
  <p>{html.escape(message)}</p>
</body>
</html>""",
        status_code=status_code,
    )


def loading_page(target_url: str, delay_seconds: int) -> HTMLResponse:
    """Interstitial shown while the browser is sent on to the marketplace."""
    url = html.escape(target_url, quote=True)
    return HTMLResponse(
        f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <meta http-equiv="refresh" content="{int(delay_seconds)};url={url}">
  <title>Installing app</title>
</head>
<body>
  <h1>Installing app&hellip;</h1>
  <p>You are being redirected to authorize the app.</p>
  <p><a href="{url}">Continue</a> if nothing happens.</p>
</body>
</html>"""
    )
