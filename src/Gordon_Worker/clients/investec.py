"""Investec Open Banking client (OAuth client-credentials over httpx).

One instance serves one tenant at a time: ``configure()`` swaps credentials
and drops the cached token and accounts. Jobs build a fresh instance per
tenant task through ``InvestecClient.factory`` and close it when the task
ends, so concurrently running tenants never observe each other's
configuration.
"""

from __future__ import annotations

import base64
import datetime
import logging
import time
import uuid
from decimal import Decimal, InvalidOperation
from types import TracebackType
from typing import Any, Final

import httpx

from Gordon_Worker.models.banking import Account, BankTransaction
from Gordon_Worker.models.status import ProbeResult
from Gordon_Worker.models.tenant import BankingCredentials
from Gordon_Worker.utils.exceptions import BankingApiError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

SERVICE_NAME: Final[str] = "investec"
DEFAULT_TIMEOUT: Final[float] = 30.0
TOKEN_EXPIRY_MARGIN_SECONDS: Final[int] = 60

TOKEN_PATH: Final[str] = "identity/v2/oauth2/token"
ACCOUNTS_PATH: Final[str] = "za/pb/v1/accounts"

# Stable ids for transactions the API returns without a UUID
_TRANSACTION_NAMESPACE: Final[uuid.UUID] = uuid.UUID("5b0f7b56-2f3e-4a4e-9c1c-6f1d8e4b7a10")


class InvestecClient:
    """Async banking-API client bound to one tenant's credentials at a time.

    Usage::

        async with InvestecClient() as client:
            client.configure(settings.banking)
            probe = await client.test_connectivity()
            accounts = await client.list_accounts()
    """

    def __init__(self, http_client: httpx.AsyncClient | None = None) -> None:
        self._client = http_client or httpx.AsyncClient(timeout=httpx.Timeout(DEFAULT_TIMEOUT))
        self._credentials: BankingCredentials | None = None
        self._base_url = ""
        self._access_token: str | None = None
        self._token_expiry = 0.0
        self._accounts: list[Account] = []

    @classmethod
    def factory(cls) -> InvestecClient:
        """Build a fresh, unconfigured client. Used as the per-tenant factory."""
        return cls()

    async def aclose(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self._client.aclose()

    async def __aenter__(self) -> InvestecClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    def configure(self, credentials: BankingCredentials) -> None:
        """Bind the client to a tenant's credentials, discarding any previous session."""
        self._credentials = credentials
        base_url = credentials.base_url.strip() or BankingCredentials().base_url
        self._base_url = base_url if base_url.endswith("/") else f"{base_url}/"
        self._access_token = None
        self._token_expiry = 0.0
        self._accounts = []

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def test_connectivity(self) -> ProbeResult:
        """Try to obtain an access token. Never raises for API failures."""
        try:
            await self._authenticate()
        except (BankingApiError, httpx.HTTPError) as exc:
            return ProbeResult(online=False, error=str(exc) or type(exc).__name__)
        return ProbeResult(online=True)

    async def list_accounts(self) -> list[Account]:
        """Return the accounts visible to the configured credentials."""
        payload = await self._get(ACCOUNTS_PATH)
        raw_accounts = (payload.get("data") or {}).get("accounts") or []
        self._accounts = [
            Account(
                account_id=str(item.get("accountId", "")),
                account_number=str(item.get("accountNumber", "")),
                account_name=str(item.get("accountName", "")),
                product_name=str(item.get("productName", "")),
            )
            for item in raw_accounts
            if isinstance(item, dict) and item.get("accountId")
        ]
        return list(self._accounts)

    async def get_balance(self, account_id: str) -> Decimal:
        """Return the current balance; liabilities (cards, loans) come back negative."""
        if not self._accounts:
            await self.list_accounts()
        payload = await self._get(f"{ACCOUNTS_PATH}/{account_id}/balance")
        balance = _to_decimal((payload.get("data") or {}).get("currentBalance"))
        account = next((a for a in self._accounts if a.account_id == account_id), None)
        if account is not None and account.is_liability and balance > 0:
            return -balance
        return balance

    async def get_transactions(
        self,
        account_id: str,
        from_date: datetime.datetime,
    ) -> list[BankTransaction]:
        """Return transactions posted on or after ``from_date`` for one account."""
        payload = await self._get(
            f"{ACCOUNTS_PATH}/{account_id}/transactions",
            params={"fromDate": from_date.date().isoformat()},
        )
        raw_transactions = (payload.get("data") or {}).get("transactions") or []
        return [
            _parse_transaction(account_id, item)
            for item in raw_transactions
            if isinstance(item, dict)
        ]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _authenticate(self) -> str:
        """Fetch (or reuse) an OAuth access token."""
        if self._access_token and time.monotonic() < self._token_expiry:
            return self._access_token

        credentials = self._require_credentials()
        basic = base64.b64encode(f"{credentials.client_id}:{credentials.secret}".encode()).decode()
        response = await self._client.post(
            f"{self._base_url}{TOKEN_PATH}",
            headers={"Authorization": f"Basic {basic}", "x-api-key": credentials.api_key},
            data={"grant_type": "client_credentials"},
        )
        if response.status_code != 200:  # noqa: PLR2004
            msg = f"Token request failed with HTTP {response.status_code}"
            raise BankingApiError(msg, service=SERVICE_NAME, http_status=response.status_code)

        body = response.json()
        token = body.get("access_token")
        if not token:
            msg = "Token response did not contain an access_token"
            raise BankingApiError(msg, service=SERVICE_NAME)

        expires_in = int(body.get("expires_in", 0))
        self._access_token = str(token)
        self._token_expiry = time.monotonic() + max(0, expires_in - TOKEN_EXPIRY_MARGIN_SECONDS)
        return self._access_token

    async def _get(self, path: str, params: dict[str, str] | None = None) -> dict[str, Any]:
        """Authenticated GET returning the decoded JSON body."""
        token = await self._authenticate()
        response = await self._client.get(
            f"{self._base_url}{path}",
            headers={"Authorization": f"Bearer {token}"},
            params=params,
        )
        if response.status_code != 200:  # noqa: PLR2004
            msg = f"GET {path} failed with HTTP {response.status_code}"
            raise BankingApiError(msg, service=SERVICE_NAME, http_status=response.status_code)
        body: dict[str, Any] = response.json()
        return body

    def _require_credentials(self) -> BankingCredentials:
        if self._credentials is None or self._credentials.is_blank:
            msg = "Banking client is not configured with credentials"
            raise BankingApiError(msg, service=SERVICE_NAME)
        return self._credentials


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------


def _to_decimal(value: object) -> Decimal:
    """Convert a JSON number to Decimal via string, defaulting to zero."""
    if value is None:
        return Decimal("0")
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return Decimal("0")


def _parse_transaction(account_id: str, item: dict[str, Any]) -> BankTransaction:
    """Map one API transaction to a BankTransaction with a normalised sign."""
    description = str(item.get("description") or "")
    amount = _to_decimal(item.get("amount"))
    balance = _to_decimal(item.get("runningBalance", item.get("accountBalance")))
    kind = str(item.get("type") or "").upper()
    if kind == "DEBIT":
        amount = -abs(amount)
    elif kind == "CREDIT":
        amount = abs(amount)

    raw_date = item.get("transactionDate") or item.get("postingDate")
    if raw_date:
        posted = datetime.datetime.fromisoformat(str(raw_date))
        if posted.tzinfo is None:
            posted = posted.replace(tzinfo=datetime.UTC)
    else:
        posted = datetime.datetime.now(datetime.UTC)

    raw_id = str(item.get("uuid") or item.get("id") or "")
    try:
        tx_id = str(uuid.UUID(raw_id))
    except ValueError:
        key = f"{account_id}_{posted.isoformat()}_{description}_{amount:.2f}_{balance:.2f}"
        tx_id = str(uuid.uuid5(_TRANSACTION_NAMESPACE, key))

    return BankTransaction(
        id=tx_id,
        account_id=account_id,
        transaction_date=posted,
        description=description,
        amount=amount,
        balance=balance,
        category=str(item["transactionType"]) if item.get("transactionType") else None,
    )
