"""OAuth2 Client Credentials flow for machine-to-machine logins.

See Also:
    :class:`~kubectl_login.flows.client_credentials.flow.ClientCredentialsFlow`
"""

from kubectl_login.flows.client_credentials.flow import ClientCredentialsFlow

__all__ = ["ClientCredentialsFlow"]
