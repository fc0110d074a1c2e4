"""Contact recency - collapse chat, call and SMS markers into one instant"""

from datetime import datetime
from typing import Dict, Iterable, Optional
from arrearsflow.domain.models import ContactChannel, ContactEvent, Debtor
from arrearsflow.utils.date_utils import as_utc


def _scalar_markers(debtor: Debtor) -> Dict[ContactChannel, Optional[datetime]]:
    return {
        ContactChannel.CHAT: debtor.last_chat_at,
        ContactChannel.VOICE_CALL: debtor.last_call_at,
        ContactChannel.SMS: debtor.last_sms_at,
    }


def latest_by_channel(
    debtor: Debtor,
    events: Optional[Iterable[ContactEvent]] = None,
) -> Dict[ContactChannel, datetime]:
    """
    Most recent contact per channel.

    A logged event for a channel always wins over the scalar field carried on
    the debtor record; the scalar is only used for channels the log has
    nothing on (or when no log is supplied at all).
    """
    latest: Dict[ContactChannel, datetime] = {}

    if events is not None:
        for event in events:
            if event.debtor_id is not None and event.debtor_id != debtor.id:
                continue
            at = as_utc(event.occurred_at)
            if event.channel not in latest or at > latest[event.channel]:
                latest[event.channel] = at

    for channel, marker in _scalar_markers(debtor).items():
        if channel not in latest and marker is not None:
            latest[channel] = as_utc(marker)

    return latest


def last_contact_date(
    debtor: Debtor,
    events: Optional[Iterable[ContactEvent]] = None,
) -> Optional[datetime]:
    """Most recent contact across all channels, or None if never contacted"""
    latest = latest_by_channel(debtor, events)
    return max(latest.values()) if latest else None
