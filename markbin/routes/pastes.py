"""
Paste routes.
Handles create (API), render preview (API), and the view, edit and config pages.
"""
import uuid
import logging
from pathlib import Path
from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import HTMLResponse, PlainTextResponse
from fastapi.templating import Jinja2Templates

from markbin.config import settings
from markbin.database import PasteDatabase, get_database
from markbin.errors import PasteExistsError, StoreError
from markbin.gateway import ConfigForm, EditForm, Error, Gateway, PasswordChallenge, Viewed
from markbin.models import Paste, PasteCreate, PasteResponse, RenderMarkdown

router = APIRouter()
logger = logging.getLogger(__name__)

templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent.parent / "templates"))


URL_FORBIDDEN_CHARS = set("/?#%")


def _valid_url(url: str) -> bool:
    """Whether a custom url can be used verbatim as a path segment."""
    return not any(ch.isspace() or ch in URL_FORBIDDEN_CHARS for ch in url)


def get_gateway(db: PasteDatabase = Depends(get_database)) -> Gateway:
    """Build a gateway over the store with the configured view password switch."""
    return Gateway(db, view_password=settings.VIEW_PASSWORD)


def _page(request: Request, result, credential: Optional[str] = None) -> HTMLResponse:
    """Render the page for a gateway result.

    Links between the pages of a paste carry the credential the request used.
    """
    query = f"?{urlencode({'view_password': credential})}" if credential else ""
    if isinstance(result, Viewed):
        return templates.TemplateResponse(request, "paste_view.html", {
            "paste": result.paste,
            "rendered": result.rendered,
            "title": result.title,
            "views": result.views,
            "query": query,
        })
    if isinstance(result, PasswordChallenge):
        return templates.TemplateResponse(request, "paste_password.html", {
            "paste": result.paste,
            "action": request.url.path,
        })
    if isinstance(result, EditForm):
        return templates.TemplateResponse(request, "paste_editor.html", {
            "paste": result.paste,
            "query": query,
        })
    if isinstance(result, ConfigForm):
        return templates.TemplateResponse(request, "paste_metadata.html", {
            "paste": result.paste,
            "paste_metadata": result.metadata,
            "query": query,
        })
    if isinstance(result, Error):
        return templates.TemplateResponse(request, "error.html", {
            "error": result.message,
        })
    raise TypeError(f"Unhandled gateway result: {result!r}")


@router.post("/api/pastes", response_model=PasteResponse, status_code=201)
async def create_paste(
    paste: PasteCreate,
    db: PasteDatabase = Depends(get_database),
) -> PasteResponse:
    """
    Create a new paste.

    Args:
        paste: Paste data (content, optional url, optional metadata)
        db: Paste store

    Returns:
        Paste url and shareable link

    Raises:
        HTTPException: If input is invalid (400), the url is taken (409)
            or the paste could not be stored (500)
    """
    if not paste.content.strip():
        raise HTTPException(
            status_code=400,
            detail="content is required and must be non-empty",
        )

    if paste.url is not None and not _valid_url(paste.url):
        raise HTTPException(
            status_code=400,
            detail="url must not be blank or contain whitespace, '/', '?', '#' or '%'",
        )

    url = paste.url or str(uuid.uuid4())

    try:
        db.save_paste(Paste(url=url, content=paste.content, metadata=paste.metadata))
    except PasteExistsError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except StoreError:
        raise HTTPException(status_code=500, detail="Failed to save paste")

    base_url = settings.APP_DOMAIN.rstrip("/")
    return PasteResponse(url=url, link=f"{base_url}/{url}")


@router.post("/api/render", response_class=PlainTextResponse)
async def render_markdown(
    body: RenderMarkdown,
    gateway: Gateway = Depends(get_gateway),
) -> str:
    """Render markdown for the live preview; no paste is involved."""
    return gateway.render(body.content)


@router.get("/{url}/edit/config", response_class=HTMLResponse)
async def config_editor(
    url: str,
    request: Request,
    view_password: Optional[str] = None,
    gateway: Gateway = Depends(get_gateway),
):
    """Metadata editor for a paste."""
    return _page(request, gateway.edit_config(url, view_password), view_password)


@router.get("/{url}/edit", response_class=HTMLResponse)
async def editor(
    url: str,
    request: Request,
    view_password: Optional[str] = None,
    gateway: Gateway = Depends(get_gateway),
):
    """Source editor for a paste."""
    return _page(request, gateway.edit(url, view_password), view_password)


@router.get("/{url}", response_class=HTMLResponse)
async def view_paste(
    url: str,
    request: Request,
    view_password: Optional[str] = None,
    gateway: Gateway = Depends(get_gateway),
):
    """
    View a paste rendered as markdown.
    Each view increments the view count.
    """
    return _page(request, gateway.view(url, view_password), view_password)
