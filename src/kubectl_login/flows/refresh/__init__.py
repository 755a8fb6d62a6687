from kubectl_login.flows.refresh.flow import RefreshFlow

__all__ = ["RefreshFlow"]
