"""Authentication flow drivers.

Each driver obtains a :class:`~kubectl_login.models.TokenRecord` for a
:class:`~kubectl_login.models.FlowConfig`:

- :class:`~kubectl_login.flows.browser.BrowserFlow` -- interactive
  Authorization Code + PKCE.
- :class:`~kubectl_login.flows.device_code.DeviceCodeFlow` -- headless device
  authorization.
- :class:`~kubectl_login.flows.client_credentials.ClientCredentialsFlow` --
  headless, confidential clients.
- :class:`~kubectl_login.flows.refresh.RefreshFlow` -- silent renewal.
"""

from kubectl_login.flows.base import FlowDriver, TokenEndpointClient
from kubectl_login.flows.browser import BrowserFlow
from kubectl_login.flows.client_credentials import ClientCredentialsFlow
from kubectl_login.flows.device_code import DeviceCodeFlow
from kubectl_login.flows.refresh import RefreshFlow

__all__ = [
    "BrowserFlow",
    "ClientCredentialsFlow",
    "DeviceCodeFlow",
    "FlowDriver",
    "RefreshFlow",
    "TokenEndpointClient",
]
