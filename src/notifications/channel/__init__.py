"""Channel adapter registry.

Only email is wired today, backed by the in-memory adapter until a real
transport is configured.
"""

from notifications.notification.notification import NotificationChannel

_channel_instances: dict[str, object] = {}


def get_channel(channel_type: str = NotificationChannel.EMAIL.value):
    """Return the adapter for ``channel_type`` (one instance per process)."""
    if channel_type not in _channel_instances:
        if channel_type == NotificationChannel.EMAIL.value:
            from notifications.channel.fake_email import FakeEmailAdapter

            _channel_instances[channel_type] = FakeEmailAdapter()
        else:
            raise ValueError(f"Unknown channel type: {channel_type}")

    return _channel_instances[channel_type]


def reset_channels():
    _channel_instances.clear()
