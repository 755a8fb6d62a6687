"""kubectl-login -- OIDC single sign-on for kubectl.

This package implements a kubectl exec-credential plugin that obtains an
OIDC/OAuth2 access token from an identity provider and caches it so that
repeated ``kubectl`` invocations do not re-authenticate.

Tokens are obtained through one of four flows:

* **browser** -- authorization code grant with PKCE and a local redirect
  listener (the default).
* **client credentials** -- non-interactive, used in headless mode when a
  client secret is configured.
* **device code** -- headless fallback where the user authorizes on another
  device.
* **refresh** -- silent renewal of a cached token that is about to expire.

Typical kubeconfig entry::

    users:
    - name: sso
      user:
        exec:
          apiVersion: client.authentication.k8s.io/v1beta1
          command: kubectl-login
          args: ["--issuer-url=https://sso.example.com", "--client-id=kubectl", "get-token"]

Modules:
    app: Typer application and console-script entry point.
    models: Pydantic models shared across the package.
    config: XDG directories, atomic writes, and flow configuration resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr discipline and logging setup.
"""

__version__ = "0.3.0"
