"""Channel name derivation for request/reply over pub/sub.

These names must stay bit-exact: independent implementations sharing a
broker rely on them to find each other.
"""

PREFIX_SEPARATOR = "_"
REQUEST_SUFFIX = ":req"
RESPONSE_SUFFIX = ":res_"


class ChannelPatterns:
    """Centralized broker channel naming."""

    @staticmethod
    def namespace_prefix(channel_prefix: str | None) -> str:
        """Return the configured prefix with its separator, or an empty string."""
        if not channel_prefix:
            return ""
        return f"{channel_prefix}{PREFIX_SEPARATOR}"

    @staticmethod
    def request(namespace_prefix: str, channel_name: str) -> str:
        """Broker channel a handler listens on for a logical channel."""
        return f"{namespace_prefix}{channel_name}{REQUEST_SUFFIX}"

    @staticmethod
    def response(namespace_prefix: str, channel_name: str, client_identity: str) -> str:
        """Private broker channel a client receives its responses on."""
        return f"{namespace_prefix}{channel_name}{RESPONSE_SUFFIX}{client_identity}"
