"""
Test Suite for Share Links

Covers share creation and validation, link format, revocation, expiry status
and the invitation email templates.
"""

import pytest
import random
import sys
from datetime import datetime, timedelta
from pathlib import Path
import tempfile
import os
import json

# Setup import path for src
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from break_tracker.data_manager import DataManager
from break_tracker.sharing import Permission, ShareManager

NOW = datetime(2025, 3, 4, 9, 0, 0)


@pytest.fixture
def data_manager():
    """Clean DataManager for each test - isolated temp file."""
    with tempfile.NamedTemporaryFile(mode="w", suffix=".json", delete=False) as temp:
        temp_path = temp.name
        json.dump({}, temp)
    dm = DataManager(temp_path)
    yield dm
    os.unlink(temp_path)
    backup = Path(temp_path).with_suffix(".bak")
    if backup.exists():
        backup.unlink()


@pytest.fixture
def share_manager(data_manager):
    return ShareManager(data_manager, base_url="https://tracker.example.com/", rng=random.Random(7))


def test_share_creates_active_link(share_manager):
    share = share_manager.share("pat@example.com", "Pat", Permission.VIEW, expiration_days=7, now=NOW)

    assert share.id == "1"
    assert share.permissions == Permission.VIEW
    assert share.expires_at == NOW + timedelta(days=7)
    assert share.link.startswith("https://tracker.example.com/shared/test_")
    assert len(share.link.rsplit("/", 1)[1]) == len("test_") + 26
    assert share_manager.get_status(share, NOW) == "active"


def test_share_defaults(share_manager):
    share = share_manager.share("pat@example.com", now=NOW)
    assert share.permissions == Permission.EDIT
    assert share.expires_at == NOW + timedelta(days=30)


@pytest.mark.parametrize("email", ["", "pat", "pat@example", "pat @example.com"])
def test_share_rejects_invalid_email(share_manager, email):
    with pytest.raises(ValueError):
        share_manager.share(email, now=NOW)


def test_share_rejects_non_positive_expiry(share_manager):
    with pytest.raises(ValueError):
        share_manager.share("pat@example.com", expiration_days=0, now=NOW)


def test_links_are_unique(share_manager):
    links = {share_manager.generate_share_link() for _ in range(20)}
    assert len(links) == 20


def test_revoke_and_expiry(share_manager):
    first = share_manager.share("pat@example.com", now=NOW)
    second = share_manager.share("sam@example.com", expiration_days=1, now=NOW)

    assert share_manager.revoke(first.id)
    assert not share_manager.revoke("99")

    shares = {share.id: share for share in share_manager.get_shares()}
    assert share_manager.get_status(shares[first.id], NOW) == "revoked"
    assert share_manager.get_status(shares[second.id], NOW + timedelta(days=1)) == "expired"
    assert share_manager.active_shares(NOW) == [shares[second.id]]


def test_shares_persist_with_data_file(data_manager, share_manager):
    share_manager.share("pat@example.com", "Pat", Permission.ADMIN, now=NOW)
    data_manager.save_data()

    reloaded = ShareManager(DataManager(data_manager.data_file)).get_shares()
    assert len(reloaded) == 1
    assert reloaded[0].recipient_name == "Pat"
    assert reloaded[0].permissions == Permission.ADMIN
    assert reloaded[0].created_at == NOW


def test_render_email(share_manager):
    share = share_manager.share("pat@example.com", "Pat", Permission.VIEW, expiration_days=30, now=NOW)

    email = share_manager.render_email(share, "manager", custom_message="See you Monday.")
    assert email["to"] == "pat@example.com"
    assert email["subject"] == "Manager access to the Employee Break Tracker"
    assert "Hi Pat," in email["body"]
    assert share.link in email["body"]
    assert "04/03/2025" in email["body"]
    assert "See you Monday." in email["body"]

    fallback = share_manager.render_email(share, "unknown-template")
    assert fallback["subject"] == "You've been invited to the Employee Break Tracker"
