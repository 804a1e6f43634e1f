from __future__ import annotations

from http.cookies import SimpleCookie

from subscribe_api.core.csrf import CSRF_COOKIE_NAME, generate_csrf_token


def get_or_create_csrf_token(jar: SimpleCookie, *, name: str = CSRF_COOKIE_NAME) -> str:
    """Reuse the token already in the cookie jar, or mint and store one.

    The token lives for the whole page session; it is not rotated per request.
    """
    morsel = jar.get(name)
    if morsel is not None and morsel.value:
        return morsel.value

    token = generate_csrf_token()
    jar[name] = token
    jar[name]["path"] = "/"
    jar[name]["samesite"] = "Strict"
    jar[name]["secure"] = True
    return token


def cookie_header(jar: SimpleCookie) -> str:
    return "; ".join(f"{key}={morsel.value}" for key, morsel in jar.items())
