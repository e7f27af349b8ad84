"""Test helpers for Priority Guard tests.

Helpers:
    MEMBER / OTHER_MEMBER: Signed-in members used across tests
    make_item: PriorityItem factory with sensible defaults
    item_record / PassthroughNormalizer: feed ready-made items through a source
    member_message_row / announcement_row / admin_message_row: raw backend rows
    SlowUnsubscribeSourceStub: source whose unsubscribe yields to the loop

Usage:
    from tests.helpers import MEMBER, make_item
"""

from tests.helpers.priority_records import (
    BASE_TIME,
    MEMBER,
    OTHER_MEMBER,
    PassthroughNormalizer,
    admin_message_row,
    announcement_row,
    item_record,
    make_item,
    member_message_row,
)
from tests.helpers.slow_unsubscribe_source import SlowUnsubscribeSourceStub

__all__ = [
    "BASE_TIME",
    "MEMBER",
    "OTHER_MEMBER",
    "PassthroughNormalizer",
    "SlowUnsubscribeSourceStub",
    "admin_message_row",
    "announcement_row",
    "item_record",
    "make_item",
    "member_message_row",
]
