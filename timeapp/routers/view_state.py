"""
URL state helpers for the dashboard: parse the current query string into
typed filters, and compute the query after switching tabs or clearing filters.
"""
from fastapi import APIRouter, HTTPException, Request

from timeapp.url_state import codec

router = APIRouter(prefix="/api/view-state", tags=["view-state"])


@router.get("")
def get_view_state(request: Request):
    state = codec.parse(request.query_params)
    return {
        "tab": state.tab,
        "parameters": state.parameters,
        "url": codec.share_url(state),
        "url_with_defaults": codec.share_url(state, include_defaults=True),
    }


@router.get("/switch/{tab}")
def switch_tab(tab: str, request: Request, preserve_filters: bool = True):
    """Query string for ``tab``, keeping only the filters that tab understands."""
    query = {k: v for k, v in request.query_params.items() if k != "preserve_filters"}
    try:
        url = codec.switch_tab(query, tab, preserve_filters)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"tab": tab, "url": url}


@router.get("/clear")
def clear_filters(request: Request):
    return {"url": codec.clear_filters(request.query_params)}
