"""OAuth sign-in and session endpoints."""

from __future__ import annotations

import hmac
import logging
import secrets
from typing import Any

from flask import (
    Blueprint,
    Response,
    current_app,
    make_response,
    redirect,
    render_template,
    request,
    session,
    url_for,
)

from compactify.api.deps import (
    current_principal,
    json_response,
    require_auth,
    session_service,
    timing,
)
from compactify.core.errors import APIError, Unauthorized, problem_response
from compactify.core.extensions import limiter
from compactify.infra.oauth import build_identity_providers
from compactify.models.principal import Provider
from compactify.schemas import AuthStatusSchema, PrincipalSchema, SessionSchema
from compactify.services._shared.errors import (
    AuthenticationError,
    IdentityProviderError,
    ServiceError,
)
from compactify.services._shared.ports import IdentityProvider

bp = Blueprint("auth", __name__)

log = logging.getLogger(__name__)

principal_schema = PrincipalSchema()
session_schema = SessionSchema()
status_schema = AuthStatusSchema()

_STATE_KEY = "oauth_state"
_PROVIDER_RULE = "any(google, github)"


def _auth_rate_limit() -> str:
    return str(current_app.config.get("AUTH_RATE_LIMIT", "30 per minute"))


# --------------------------------------------------------------------------- #
# Helpers
# --------------------------------------------------------------------------- #


def _identity_providers() -> dict[Provider, IdentityProvider]:
    """Return the provider registry, built once per app."""
    registry = current_app.extensions.get("identity_providers")
    if registry is None:
        registry = build_identity_providers(current_app.config)
        current_app.extensions["identity_providers"] = registry
    return registry


def _adapter(provider: str) -> IdentityProvider | None:
    return _identity_providers().get(Provider.parse(provider))


def _callback_url(provider: str) -> str:
    return url_for("auth.oauth_callback", provider=provider, _external=True)


def _refresh_cookie_name() -> str:
    return str(current_app.config.get("REFRESH_COOKIE_NAME", "refresh_token"))


def _set_refresh_cookie(response: Response, token: str) -> None:
    cfg = current_app.config
    response.set_cookie(
        _refresh_cookie_name(),
        token,
        max_age=int(cfg["REFRESH_TOKEN_TTL"].total_seconds()),
        httponly=True,
        secure=bool(cfg.get("REFRESH_COOKIE_SECURE", True)),
        samesite=cfg.get("REFRESH_COOKIE_SAMESITE", "Lax"),
        path=cfg.get("REFRESH_COOKIE_PATH", "/"),
    )


def _clear_refresh_cookie(response: Response) -> None:
    cfg = current_app.config
    response.delete_cookie(
        _refresh_cookie_name(),
        path=cfg.get("REFRESH_COOKIE_PATH", "/"),
        httponly=True,
        secure=bool(cfg.get("REFRESH_COOKIE_SECURE", True)),
        samesite=cfg.get("REFRESH_COOKIE_SAMESITE", "Lax"),
    )


def _popup_response(message: dict[str, Any], *, success: bool) -> Response:
    """Render the page that posts ``message`` to the opener and closes itself."""
    html = render_template(
        "oauth_popup.html",
        message=message,
        success=success,
        target_origin=current_app.config.get("FRONTEND_URL"),
        close_after_ms=1000 if success else 2000,
    )
    response = make_response(html)
    response.headers["Cache-Control"] = "no-store"
    return response


def _check_state(provider: str) -> None:
    expected = session.pop(_STATE_KEY, None) or {}
    received = request.args.get("state", "")
    if expected.get("provider") != provider or not hmac.compare_digest(
        str(expected.get("state", "")), received
    ):
        raise IdentityProviderError("Sign-in session expired. Please try again.")


# --------------------------------------------------------------------------- #
# OAuth popup flow
# --------------------------------------------------------------------------- #


@bp.get(f"/<{_PROVIDER_RULE}:provider>")
@limiter.limit(_auth_rate_limit)
def oauth_start(provider: str):
    """Send the popup to the provider's consent page."""

    adapter = _adapter(provider)
    if adapter is None:
        raise APIError(f"{provider} sign-in is not configured", status_code=404, code="not_found")

    state = secrets.token_urlsafe(24)
    session[_STATE_KEY] = {"provider": provider, "state": state}
    return redirect(adapter.authorization_url(state=state, redirect_uri=_callback_url(provider)))


@bp.get(f"/<{_PROVIDER_RULE}:provider>/callback")
@limiter.limit(_auth_rate_limit)
@timing
def oauth_callback(provider: str):
    """Finish sign-in and hand the access token to the opener window."""

    try:
        if request.args.get("error"):
            raise IdentityProviderError(f"{provider.capitalize()} sign-in was cancelled.")
        _check_state(provider)

        code = request.args.get("code")
        adapter = _adapter(provider)
        if not code or adapter is None:
            raise IdentityProviderError(f"Missing required user data from {provider.upper()}.")

        assertion = adapter.fetch_identity(code=code, redirect_uri=_callback_url(provider))
        service = session_service()
        principal = service.resolve_principal(assertion)
        pair = service.issue_for_principal(principal.id)
    except ServiceError as exc:
        log.warning("OAuth callback failed", extra={"provider": provider.upper()})
        return _popup_response({"type": "OAUTH_ERROR", "error": str(exc)}, success=False)

    response = _popup_response(
        {
            "type": "OAUTH_SUCCESS",
            "access_token": pair.access_token,
            "expires_in": pair.access_expires_in,
            "principal": principal_schema.dump(pair.principal),
        },
        success=True,
    )
    _set_refresh_cookie(response, pair.refresh_token)
    return response


# --------------------------------------------------------------------------- #
# Session endpoints
# --------------------------------------------------------------------------- #


@bp.post("/refresh")
@limiter.limit(_auth_rate_limit)
@timing
def refresh():
    """Rotate the refresh cookie and return a new access token."""

    token = request.cookies.get(_refresh_cookie_name())
    try:
        pair = session_service().refresh(token)
    except AuthenticationError:
        response = problem_response(Unauthorized())
        _clear_refresh_cookie(response)
        return response

    response = json_response({"data": session_schema.dump(pair)})
    _set_refresh_cookie(response, pair.refresh_token)
    return response


@bp.post("/logout")
@timing
def logout():
    """Revoke the refresh token (best effort) and clear the cookie."""

    session_service().revoke(request.cookies.get(_refresh_cookie_name()))
    response = json_response({"data": {"logged_out": True}})
    _clear_refresh_cookie(response)
    return response


@bp.get("/status")
@limiter.limit(_auth_rate_limit)
@timing
def status():
    """Report whether the refresh cookie still maps to a live session."""

    token = request.cookies.get(_refresh_cookie_name())
    principal = session_service().status(token) if token else None
    body = {"is_authenticated": principal is not None, "principal": principal}
    response = json_response({"data": status_schema.dump(body)})
    if token and principal is None:
        _clear_refresh_cookie(response)
    return response


@bp.get("/me")
@require_auth
@timing
def me():
    """Return the principal behind the bearer token."""

    return json_response({"data": principal_schema.dump(current_principal())})
