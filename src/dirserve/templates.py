"""HTML page templates. Positional `{0}`, `{1}`... slots, filled by `html_response`."""

ERROR_HTML = """<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>{0}</title>
    <style>
        body {{ font-family: Arial, sans-serif; text-align: center; margin-top: 100px; }}
        h1 {{ color: #cc0000; }}
    </style>
</head>
<body>
    <h1>{0}</h1>
    <p>{1}</p>
    {2}
    <hr>
    <p><em>dirserve</em></p>
</body>
</html>"""

DIRECTORY_LISTING_HTML = """<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>Directory listing for {0}</title>
    <style>
        body {{ font-family: Arial, sans-serif; margin: 40px; }}
        h1 {{ color: #333; }}
        ul {{ list-style: none; padding-left: 0; }}
        li {{ padding: 4px 0; border-bottom: 1px solid #ddd; }}
        a {{ text-decoration: none; color: #0066cc; }}
        a:hover {{ text-decoration: underline; }}
    </style>
</head>
<body>
    <h1>Directory listing for {0}</h1>
    <hr>
    <ul>
{1}    </ul>
    <hr>
    <p><em>dirserve</em></p>
</body>
</html>"""


def html_response(template: str, args: list[str]) -> bytes:
    return template.format(*args).encode("utf-8")
