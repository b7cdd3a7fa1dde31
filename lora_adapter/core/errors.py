"""Error taxonomy for the LoRa adapter.

Every failure aborts the message or provisioning call it belongs to. Nothing
here is retried; callers decide whether to log, drop or redeliver.
"""


class LoRaAdapterError(Exception):
    """Base class for all adapter errors."""


class MalformedIdentityError(LoRaAdapterError):
    """Invalid identity received (e.g. empty application ID or device EUI)."""


class MalformedMessageError(LoRaAdapterError):
    """LoRa message payload or envelope could not be decoded."""


class RouteNotFoundError(LoRaAdapterError):
    """No route map entry exists for the requested key."""

    def __init__(self, key: str):
        super().__init__(f"route map not found for key '{key}'")
        self.key = key


class NotFoundDeviceError(LoRaAdapterError):
    """Non-existent route map for a device EUI."""

    def __init__(self, dev_eui: str):
        super().__init__(f"route map not found for device EUI '{dev_eui}'")
        self.dev_eui = dev_eui


class NotFoundApplicationError(LoRaAdapterError):
    """Non-existent route map for an application ID."""

    def __init__(self, app_id: str):
        super().__init__(f"route map not found for application ID '{app_id}'")
        self.app_id = app_id


class StoreUnavailableError(LoRaAdapterError):
    """Route map backing store cannot be reached."""
