"""
Request flows for paste pages.
Fetches the paste, applies the view password policy, counts views and
renders markdown. Each flow returns one of the result types below; the
routes turn them into pages.
"""
import logging
from dataclasses import dataclass
from typing import Callable, Optional, Union

from markbin.access import Access, evaluate
from markbin.database import PasteDatabase
from markbin.errors import OtherError, PasteError
from markbin.models import Paste
from markbin.renderer import render_markdown

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Viewed:
    """Rendered paste ready for display."""
    paste: Paste
    rendered: str
    title: str
    views: int


@dataclass(frozen=True)
class PasswordChallenge:
    """The paste needs a view password before it can be shown."""
    paste: Paste


@dataclass(frozen=True)
class EditForm:
    """Raw paste source for the editor."""
    paste: Paste


@dataclass(frozen=True)
class ConfigForm:
    """Paste with its metadata serialized for the config editor."""
    paste: Paste
    metadata: str


@dataclass(frozen=True)
class Error:
    """Terminal failure with a message for the error page."""
    message: str


ViewResult = Union[Viewed, PasswordChallenge, Error]
EditResult = Union[EditForm, PasswordChallenge, Error]
ConfigResult = Union[ConfigForm, PasswordChallenge, Error]


class Gateway:
    """Runs the view, edit and config flows against a paste store."""

    def __init__(
        self,
        db: PasteDatabase,
        view_password: bool,
        renderer: Callable[..., str] = render_markdown,
    ):
        """
        Args:
            db: Paste store
            view_password: Whether per-paste view passwords are enforced
            renderer: Markdown renderer taking content and a flag list
        """
        self.db = db
        self.view_password = view_password
        self.renderer = renderer

    def _check(self, paste: Paste, credential: Optional[str]) -> Optional[PasswordChallenge]:
        if evaluate(paste.metadata, credential, self.view_password) is Access.CHALLENGE:
            logger.info(f"View password required for paste {paste.url}")
            return PasswordChallenge(paste=paste)
        return None

    def view(self, url: str, credential: Optional[str] = None) -> ViewResult:
        """
        Show a paste rendered as markdown, counting the view.

        The view count is incremented before the password check, so a store
        failure blocks the page even for pastes without a password.
        """
        try:
            paste = self.db.get_paste_by_url(url)
            self.db.incr_views_by_url(paste.url)
        except PasteError as e:
            logger.warning(f"Cannot view paste {url}: {e}")
            return Error(message=str(e))

        challenge = self._check(paste, credential)
        if challenge is not None:
            return challenge

        rendered = self.renderer(paste.content, [])
        return Viewed(
            paste=paste,
            rendered=rendered,
            title=paste.display_title,
            views=self.db.get_views_by_url(paste.url),
        )

    def edit(self, url: str, credential: Optional[str] = None) -> EditResult:
        """Show the raw source of a paste for editing."""
        try:
            paste = self.db.get_paste_by_url(url)
        except PasteError as e:
            logger.warning(f"Cannot edit paste {url}: {e}")
            return Error(message=str(e))

        return self._check(paste, credential) or EditForm(paste=paste)

    def edit_config(self, url: str, credential: Optional[str] = None) -> ConfigResult:
        """Show the metadata of a paste as JSON for the config editor."""
        try:
            paste = self.db.get_paste_by_url(url)
        except PasteError as e:
            logger.warning(f"Cannot edit config of paste {url}: {e}")
            return Error(message=str(e))

        challenge = self._check(paste, credential)
        if challenge is not None:
            return challenge

        try:
            metadata = paste.metadata.model_dump_json()
        except ValueError as e:
            logger.error(f"Failed to serialize metadata of paste {url}: {e}")
            return Error(message=str(OtherError()))
        return ConfigForm(paste=paste, metadata=metadata)

    def render(self, content: str) -> str:
        """Render arbitrary markdown (live preview)."""
        return self.renderer(content, [])
