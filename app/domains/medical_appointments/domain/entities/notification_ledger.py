"""Notification Ledger.

Per-phone, per-type record of the last time each notification went out.
"""

from collections.abc import Iterable, Iterator

from ..value_objects.notification_type import NotificationType, ttl_for


def _type_key(notification_type: NotificationType | str) -> str:
    return notification_type.value if isinstance(notification_type, NotificationType) else str(notification_type)


class NotificationLedger:
    """
    Ledger de notificaciones enviadas.

    Keys are canonical phone keys; values map a notification type to the epoch
    millisecond timestamp of its last send. Dedup decisions are pure functions of
    the stored timestamp, the type's TTL and the supplied clock value.
    """

    def __init__(self, entries: dict[str, dict[str, int]] | None = None):
        self._entries: dict[str, dict[str, int]] = {}
        for key, types in (entries or {}).items():
            self._entries[key] = {str(t): int(ts) for t, ts in types.items()}

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> dict[str, int]:
        return dict(self._entries.get(key, {}))

    def last_sent(self, key: str, notification_type: NotificationType | str) -> int | None:
        type_key = _type_key(notification_type)
        return self._entries.get(key, {}).get(type_key)

    def has_sent(
        self, key: str, notification_type: NotificationType | str, now_ms: int, ttl_ms: int | None = None
    ) -> bool:
        """True iff a send of this type happened less than its TTL (or `ttl_ms`) ago."""
        type_key = _type_key(notification_type)
        timestamp = self._entries.get(key, {}).get(type_key)
        if timestamp is None:
            return False
        return (now_ms - timestamp) < (ttl_for(type_key) if ttl_ms is None else ttl_ms)

    def register(self, key: str, notification_type: NotificationType | str, now_ms: int) -> None:
        type_key = _type_key(notification_type)
        self._entries.setdefault(key, {})[type_key] = now_ms

    def retain_only(self, key: str, notification_type: NotificationType) -> None:
        """Forget every type for `key` except `notification_type`."""
        entry = self._entries.get(key)
        if entry is None:
            return
        kept = {t: ts for t, ts in entry.items() if t == notification_type.value}
        if kept:
            self._entries[key] = kept
        else:
            del self._entries[key]

    def prune_older_than(self, cutoff_ms: int) -> int:
        """Drop keys with no timestamp at or after `cutoff_ms`. Returns the count dropped."""
        stale = [key for key, types in self._entries.items() if not any(ts >= cutoff_ms for ts in types.values())]
        for key in stale:
            del self._entries[key]
        return len(stale)

    def retain_keys(self, active_keys: Iterable[str]) -> int:
        """Drop keys not in `active_keys`. Returns the count dropped."""
        active = set(active_keys)
        gone = [key for key in self._entries if key not in active]
        for key in gone:
            del self._entries[key]
        return len(gone)

    def to_dict(self) -> dict[str, dict[str, int]]:
        return {key: dict(types) for key, types in self._entries.items()}
