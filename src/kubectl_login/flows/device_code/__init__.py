"""OAuth2 Device Authorization Grant (:rfc:`8628`) flow.

Used in headless mode when no client secret is configured, or when the
client-credentials grant fails.

See Also:
    :class:`~kubectl_login.flows.device_code.flow.DeviceCodeFlow`
"""

from kubectl_login.flows.device_code.flow import DeviceCodeFlow

__all__ = ["DeviceCodeFlow"]
