"""
View password policy shared by every paste page.
"""
from enum import Enum
from typing import Optional

from markbin.models import PasteMetadata


class Access(Enum):
    """Outcome of a view password check."""
    ALLOW = "allow"
    CHALLENGE = "challenge"


def evaluate(
    metadata: PasteMetadata,
    supplied: Optional[str],
    feature_enabled: bool,
) -> Access:
    """
    Decide whether a requester may see a paste.

    Args:
        metadata: Metadata of the requested paste
        supplied: Password given by the requester, if any
        feature_enabled: Whether view passwords are enforced at all

    Returns:
        Access.ALLOW, or Access.CHALLENGE when a password must be entered
    """
    if not feature_enabled:
        return Access.ALLOW
    if not metadata.view_password:
        return Access.ALLOW
    # Missing and wrong passwords are treated the same.
    # Plain equality, not a constant-time comparison.
    if supplied and supplied == metadata.view_password:
        return Access.ALLOW
    return Access.CHALLENGE
