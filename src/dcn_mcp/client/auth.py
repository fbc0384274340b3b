"""Credential holder and nonce-signature login for the catalog service.

The catalog authenticates a wallet address in two steps:

    GET  /nonce/{address}                      -> {"nonce": "..."}
    POST /auth {address, signature, message}   -> {"access_token": "..."}

where ``message`` is ``"Login nonce: <nonce>"`` signed by the wallet. Signing
itself is injected (see ``Signer``); this module only drives the exchange and
stores the resulting bearer token.
"""

import inspect
from typing import Awaitable, Callable, Protocol, Union

import httpx

from ..models import NetworkError
from .log_utils import _ClientLogger

Signer = Callable[[str, str], Union[str, Awaitable[str]]]

LOGIN_MESSAGE_PREFIX = "Login nonce: "


class TokenStore:
    """Holds the current bearer token."""

    def __init__(self, token: str | None = None) -> None:
        self._token = token or None

    def get(self) -> str | None:
        return self._token

    def set(self, token: str | None) -> None:
        self._token = token or None

    def clear(self) -> None:
        self._token = None


# Process-wide credential holder shared by clients that are not given their own.
_token_store = TokenStore()


def get_token_store() -> TokenStore:
    """Return the process-wide token store."""
    return _token_store


class LoginHandler(Protocol):
    """Capability used by the client to recover from a 401."""

    async def attempt_login(self) -> bool:
        """Try to obtain a fresh token; return True when one is stored."""
        ...


class NonceLoginHandler:
    """Login handler performing the nonce/signature exchange."""

    def __init__(
        self,
        base_url: str,
        address: str,
        signer: Signer,
        token_store: TokenStore | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url
        self.address = address.strip()
        self.signer = signer
        self.token_store = token_store or get_token_store()
        self.timeout = timeout
        self._transport = transport
        self._logger = _ClientLogger("AUTH")

    async def _sign(self, message: str) -> str:
        signature = self.signer(message, self.address)
        if inspect.isawaitable(signature):
            signature = await signature
        return str(signature)

    async def attempt_login(self) -> bool:
        """Run the exchange; a missing access_token counts as a failed login."""
        if not self.address:
            self._logger.warning("Login skipped: no wallet address configured")
            return False

        async with httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout),
            transport=self._transport,
        ) as http:
            try:
                nonce_res = await http.get(f"/nonce/{self.address}")
                nonce_res.raise_for_status()
                nonce = nonce_res.json().get("nonce")
                if not nonce:
                    raise NetworkError(f"No nonce issued for {self.address}")

                message = f"{LOGIN_MESSAGE_PREFIX}{nonce}"
                signature = await self._sign(message)

                auth_res = await http.post(
                    "/auth",
                    json={"address": self.address, "signature": signature, "message": message},
                )
                auth_res.raise_for_status()
                result = auth_res.json()
            except (httpx.HTTPError, ValueError) as err:
                raise NetworkError(f"Login request failed for {self.address}: {err}") from err

        token = result.get("access_token") if isinstance(result, dict) else None
        if not token:
            self._logger.warning(f"Authentication failed for {self.address}")
            return False

        self.token_store.set(token)
        self._logger.info(f"Authenticated as {self.address}")
        return True
