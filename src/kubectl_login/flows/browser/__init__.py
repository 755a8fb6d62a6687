"""Interactive browser login (Authorization Code + PKCE).

See Also:
    :class:`~kubectl_login.flows.browser.flow.BrowserFlow`
    :class:`~kubectl_login.flows.browser.listener.RedirectListener`
"""

from kubectl_login.flows.browser.flow import BrowserFlow
from kubectl_login.flows.browser.listener import RedirectListener

__all__ = ["BrowserFlow", "RedirectListener"]
