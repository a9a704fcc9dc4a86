"""
Link Sharing for Break Tracking System

Simulates sharing the tracker with colleagues: share links with a permission
level and an expiry date, revocation, and invitation email text. Tokens are
random strings for display only and grant no access to anything.
"""

import random
import re
import string
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Any
from dataclasses import dataclass
from enum import Enum
import logging

from .data_manager import DataManager

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
TOKEN_PREFIX = "test_"


class Permission(Enum):
    VIEW = "view"
    EDIT = "edit"
    ADMIN = "admin"


@dataclass
class ShareLink:
    id: str
    recipient_email: str
    recipient_name: str
    permissions: Permission
    created_at: datetime
    expires_at: datetime
    link: str
    is_active: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "recipientEmail": self.recipient_email,
            "recipientName": self.recipient_name,
            "permissions": self.permissions.value,
            "createdAt": self.created_at.isoformat(),
            "expiresAt": self.expires_at.isoformat(),
            "link": self.link,
            "isActive": self.is_active,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ShareLink':
        return cls(
            id=data["id"],
            recipient_email=data["recipientEmail"],
            recipient_name=data.get("recipientName", ""),
            permissions=Permission(data.get("permissions", Permission.VIEW.value)),
            created_at=datetime.fromisoformat(data["createdAt"]),
            expires_at=datetime.fromisoformat(data["expiresAt"]),
            link=data["link"],
            is_active=data.get("isActive", True),
        )


@dataclass
class EmailTemplate:
    id: str
    name: str
    subject: str
    body: str


EMAIL_TEMPLATES = {
    "default": EmailTemplate(
        id="default",
        name="Standard Invitation",
        subject="You've been invited to the Employee Break Tracker",
        body=(
            "Hi {recipient_name},\n\n"
            "You have been given {permission} access to the Employee Break Tracker.\n\n"
            "Open the tracker here: {link}\n\n"
            "This link expires on {expires}.\n"
            "{custom_message}"
        ),
    ),
    "manager": EmailTemplate(
        id="manager",
        name="Manager Access",
        subject="Manager access to the Employee Break Tracker",
        body=(
            "Hi {recipient_name},\n\n"
            "You now have {permission} access to review break compliance, coverage "
            "and overtime for your team.\n\n"
            "Access link: {link}\n"
            "Valid until: {expires}\n"
            "{custom_message}"
        ),
    ),
    "supervisor": EmailTemplate(
        id="supervisor",
        name="Supervisor Access",
        subject="Supervisor access to the Employee Break Tracker",
        body=(
            "Hi {recipient_name},\n\n"
            "Please use the link below to record shifts, breaks and coverage "
            "assignments ({permission} access).\n\n"
            "{link}\n\n"
            "The link is valid until {expires}.\n"
            "{custom_message}"
        ),
    ),
}


class ShareManager:
    """Creates, lists and revokes simulated share links"""

    def __init__(self, data_manager: DataManager, base_url: str = "http://localhost:3000",
                 rng: Optional[random.Random] = None):
        self.data_manager = data_manager
        self.base_url = base_url.rstrip("/")
        self.rng = rng or random.Random()

    def generate_share_link(self) -> str:
        alphabet = string.ascii_lowercase + string.digits
        token = TOKEN_PREFIX + "".join(self.rng.choice(alphabet) for _ in range(26))
        return f"{self.base_url}/shared/{token}"

    def share(self, recipient_email: str, recipient_name: str = "",
              permissions: Permission = Permission.EDIT, expiration_days: int = 30,
              now: Optional[datetime] = None) -> ShareLink:
        """Record a new share link for a recipient"""
        if not EMAIL_RE.match(recipient_email or ""):
            raise ValueError(f"Invalid email address: {recipient_email!r}")
        if expiration_days <= 0:
            raise ValueError("Expiration must be at least one day")

        now = now or datetime.now()
        existing_ids = [int(link["id"]) for link in self.data_manager.get_share_links() if str(link["id"]).isdigit()]
        share = ShareLink(
            id=str(max(existing_ids, default=0) + 1),
            recipient_email=recipient_email,
            recipient_name=recipient_name,
            permissions=Permission(permissions),
            created_at=now,
            expires_at=now + timedelta(days=expiration_days),
            link=self.generate_share_link(),
        )
        self.data_manager.save_share_link(share.to_dict())
        logger.info(f"Shared {share.permissions.value} access with {recipient_email}")
        return share

    def get_shares(self) -> List[ShareLink]:
        return [ShareLink.from_dict(data) for data in self.data_manager.get_share_links()]

    def revoke(self, share_id: str) -> bool:
        for share in self.get_shares():
            if share.id == share_id:
                share.is_active = False
                self.data_manager.save_share_link(share.to_dict())
                logger.info(f"Revoked share link {share_id} for {share.recipient_email}")
                return True
        return False

    @staticmethod
    def get_status(share: ShareLink, now: Optional[datetime] = None) -> str:
        """Share state: revoked, expired or active"""
        if not share.is_active:
            return "revoked"
        if share.expires_at <= (now or datetime.now()):
            return "expired"
        return "active"

    def active_shares(self, now: Optional[datetime] = None) -> List[ShareLink]:
        return [share for share in self.get_shares() if self.get_status(share, now) == "active"]

    def render_email(self, share: ShareLink, template_id: str = "default",
                     custom_message: str = "") -> Dict[str, str]:
        """Fill an email template for a share; returns subject and body"""
        template = EMAIL_TEMPLATES.get(template_id, EMAIL_TEMPLATES["default"])
        body = template.body.format(
            recipient_name=share.recipient_name or share.recipient_email,
            permission=share.permissions.value,
            link=share.link,
            expires=share.expires_at.strftime("%m/%d/%Y"),
            custom_message=f"\n{custom_message}\n" if custom_message else "",
        )
        return {"to": share.recipient_email, "subject": template.subject, "body": body}
