"""Link management endpoints."""

from __future__ import annotations

from flask import Blueprint, current_app, request

from compactify.api.deps import (
    current_principal,
    json_response,
    link_service,
    require_auth,
    service_errors,
    timing,
)
from compactify.core.extensions import limiter
from compactify.schemas import (
    LinkCreateAnonymousSchema,
    LinkCreateSchema,
    LinkExtendSchema,
    LinkListQuerySchema,
    LinkSchema,
    LinkStatsSchema,
    MetaSchema,
)
from compactify.services.links import LinkListIn

bp = Blueprint("links", __name__)

anonymous_schema = LinkCreateAnonymousSchema()
create_schema = LinkCreateSchema()
extend_schema = LinkExtendSchema()
list_query_schema = LinkListQuerySchema()
link_schema = LinkSchema()
meta_schema = MetaSchema()
stats_schema = LinkStatsSchema()


def _rate(key: str, default: str):
    def _limit() -> str:
        return str(current_app.config.get(key, default))

    return _limit


_anon_create_limit = _rate("LINK_CREATE_ANON_RATE_LIMIT", "5 per minute")
_create_limit = _rate("LINK_CREATE_RATE_LIMIT", "20 per minute")
_dashboard_limit = _rate("LINK_DASHBOARD_RATE_LIMIT", "60 per minute")
_mutate_limit = _rate("LINK_MUTATE_RATE_LIMIT", "20 per minute")


@bp.post("/anonymous")
@limiter.limit(_anon_create_limit)
@timing
@service_errors
def create_anonymous():
    """Shorten a URL without an account; the link expires automatically."""

    data = anonymous_schema.load(request.get_json(silent=True) or {})
    link = link_service().create_anonymous(data["original_url"])
    return json_response({"data": link_schema.dump(link)}, status=201)


@bp.post("")
@limiter.limit(_create_limit)
@require_auth
@timing
@service_errors
def create_link():
    """Shorten a URL for the signed-in principal."""

    data = create_schema.load(request.get_json(silent=True) or {})
    link = link_service().create_owned(
        data["original_url"],
        current_principal().id,
        expires_at=data.get("expires_at"),
    )
    return json_response({"data": link_schema.dump(link)}, status=201)


@bp.get("")
@limiter.limit(_dashboard_limit)
@require_auth
@timing
@service_errors
def list_links():
    """Return one dashboard page of the principal's links."""

    query = list_query_schema.load(request.args)
    result = link_service().list_for_owner(
        LinkListIn(
            owner_id=current_principal().id,
            page=query["page"],
            page_size=query["limit"],
            sort_key=query["sort_by"],
            sort_dir=query["sort_order"],
            search=query["search"],
            state=query["filter"],
        )
    )
    body = {
        "data": link_schema.dump(result.items, many=True),
        "meta": meta_schema.dump(
            {"total": result.total, "page": result.page, "limit": result.page_size, "pages": result.pages}
        ),
        "stats": stats_schema.dump({"total_clicks": result.total_clicks}),
    }
    return json_response(body)


@bp.put("/<int:link_id>/extend")
@limiter.limit(_mutate_limit)
@require_auth
@timing
@service_errors
def extend_link(link_id: int):
    """Move the expiry of an owned link and reactivate it."""

    data = extend_schema.load(request.get_json(silent=True) or {})
    link = link_service().extend(current_principal().id, link_id, data["expires_at"])
    return json_response({"data": link_schema.dump(link)})


@bp.put("/<int:link_id>/regenerate")
@limiter.limit(_mutate_limit)
@require_auth
@timing
@service_errors
def regenerate_link(link_id: int):
    """Issue a new short code for an owned link."""

    link = link_service().regenerate(current_principal().id, link_id)
    return json_response({"data": link_schema.dump(link)})


@bp.delete("/<int:link_id>")
@limiter.limit(_mutate_limit)
@require_auth
@timing
@service_errors
def delete_link(link_id: int):
    """Delete one owned link."""

    link_service().delete(current_principal().id, link_id)
    return json_response({"data": {"deleted": 1}})


@bp.delete("")
@limiter.limit(_mutate_limit)
@require_auth
@timing
@service_errors
def delete_all_links():
    """Delete every link of the principal."""

    deleted = link_service().delete_all(current_principal().id)
    return json_response({"data": {"deleted": deleted}})
