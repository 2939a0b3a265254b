"""
Pytest configuration and fixtures for tests
"""
import os
import sys
from decimal import Decimal

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from rakestats.config import ReportConfig, StoreConfig


def make_user(uid, name=None, nid="NET1", sbamt=0, bbamt=0, pbbamt=0, ramt=0, **extra):
    """Raw participant entry as stored in ``users``."""
    user = {
        "uid": uid,
        "un": name if name is not None else f"player{uid}",
        "nid": nid,
        "id": f"sess-{uid}",
        "sbamt": sbamt,
        "bbamt": bbamt,
        "pbbamt": pbbamt,
        "pl": 0,
        "ramt": ramt,
    }
    user.update(extra)
    return user


def make_hand(gid="1001", users=None, et="2025-06-15T12:05:00Z", st="2025-06-15T12:00:00Z", **extra):
    """Raw hand document with the store's short keys."""
    doc = {
        "gid": gid,
        "gt": "RING",
        "bp": False,
        "gs": "Fold",
        "st": st,
        "et": et,
        "tid": "T1",
        "sb": 10,
        "bb": 20,
        "ante": 0,
        "users": users if users is not None else [make_user(1, sbamt=10, bbamt=20, ramt=3)],
        "gd": [],
        "winners": [],
        "mrwinners": [],
        "potwinamtplayerlist": [],
        "gramt": 0,
    }
    doc.update(extra)
    return doc


def D(value) -> Decimal:
    return Decimal(str(value))


@pytest.fixture
def jsonl_config(tmp_path):
    """Config reading JSONL partitions from a temporary directory"""
    return ReportConfig(
        store=StoreConfig(backend="jsonl", data_dir=str(tmp_path)),
        default_user_ids=[1, 2, 3],
        max_workers=2,
        strict_invariants=True,
        output_dir=str(tmp_path),
    )
