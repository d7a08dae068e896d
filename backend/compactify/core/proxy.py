"""WSGI proxy middleware configuration helper."""

from __future__ import annotations

from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix


def init_app(app: Flask) -> None:
    """Apply :class:`werkzeug.middleware.proxy_fix.ProxyFix` when enabled.

    Rate limits are keyed on the client address and short URLs are built
    from the public scheme, so both must reflect the original request rather
    than the load balancer hop.

    Parameters
    ----------
    app: flask.Flask
        Application whose WSGI pipeline should respect upstream proxy headers.

    Notes
    -----
    Controlled by ``USE_PROXYFIX`` (default ``True``) and ``PROXY_HOPS``
    (number of trusted ``X-Forwarded-*`` hops, default ``1``).
    """
    if not app.config.get("USE_PROXYFIX", True):
        return
    hops = int(app.config.get("PROXY_HOPS", 1))
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=hops, x_proto=hops, x_host=hops, x_prefix=hops)
