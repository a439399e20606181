"""Shared fixtures and fakes for the test suite."""
from __future__ import annotations

import html
import smtplib
from typing import Any, Iterable

import pytest

from contractwatch.core.backends.base import LocatorKind, LocatorStrategy, Navigator
from contractwatch.core.config.models import NotifierConfig, TimingProfile
from contractwatch.core.extract.base import ContractRecord
from contractwatch.persistence.store import ContractStore


DETAIL_URL = "https://contrataciondelestado.es/wps/poc?uri=deeplink:detalle_licitacion&idEvl={}"
DOC_URL = "https://contrataciondelestado.es/wps/wcm/connect/GetDocumentByIdServlet?DocumentIdParam={}"


# =============================================================================
# HTML builders
# =============================================================================


HEADER_ROW = (
    "<tr><td>Expediente</td><td>Tipo de Contrato</td><td>Estado</td>"
    "<td>Importe</td><td>Fecha de presentación</td><td>Órgano de Contratación</td></tr>"
)


def result_row(
    first_cell: str,
    status: str = "Publicada",
    *,
    href: str | None = None,
    contract_type: str = "Suministros",
    amount: str = "45.000,00 EUR",
    date: str = "15/03/2025",
    body: str = "Ayuntamiento de Getafe",
) -> str:
    cell = f'<a href="{html.escape(href)}">{first_cell}</a>' if href else first_cell
    return (
        f"<tr><td>{cell}</td><td>{contract_type}</td><td>{status}</td>"
        f"<td>{amount}</td><td>{date}</td><td>{body}</td></tr>"
    )


def results_page(rows: Iterable[str], *, header: bool = True, table_id: str = "myTablaBusquedaCustom") -> str:
    body = (HEADER_ROW if header else "") + "".join(rows)
    return f'<html><body><table id="{table_id}">{body}</table></body></html>'


def document_row(doc_type: str, href: str, link_class: str = "celdaTam2") -> str:
    return (
        f'<tr><td class="tipoDocumento">{doc_type}</td>'
        f'<td><a class="{link_class}" href="{html.escape(href)}">Documento</a></td></tr>'
    )


def detail_page(*rows: str) -> str:
    return f"<html><body><table>{''.join(rows)}</table></body></html>"


def make_contract(contract_id: str = "10892/2024", status: str = "Publicada", **kwargs: Any) -> ContractRecord:
    kwargs.setdefault("description", "Suministro de pantallas LED")
    kwargs.setdefault("contract_type", "Suministros")
    kwargs.setdefault("amount", "45.000,00 EUR")
    return ContractRecord(id=contract_id, status=status, **kwargs)


# =============================================================================
# Fakes
# =============================================================================


class FakeClock:
    """Monotonic clock advanced only by its own sleep."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeNavigator(Navigator):
    """Scripted navigator.

    ``elements`` holds the locator values that match; element handles are
    the locator values themselves.
    """

    def __init__(
        self,
        elements: Iterable[str] = (),
        *,
        pages: dict[str, str] | None = None,
        content: str = "",
        texts: Iterable[str] = (),
        table_after: int = 0,
        fail_urls: dict[str, Exception] | None = None,
    ) -> None:
        self.elements = set(elements)
        self.pages = pages or {}
        self.content = content
        self.texts = list(texts)
        self.table_after = table_after
        self.fail_urls = fail_urls or {}

        self.actions: list[tuple] = []
        self.screenshots: list[str] = []
        self.closed = False
        self._id_lookups = 0

    @property
    def name(self) -> str:
        return "fake"

    async def navigate(self, url: str) -> None:
        self.actions.append(("navigate", url))
        if url in self.fail_urls:
            raise self.fail_urls[url]
        if url in self.pages:
            self.content = self.pages[url]

    async def find_element(self, strategy: LocatorStrategy) -> Any | None:
        if strategy.kind is LocatorKind.ID:
            self._id_lookups += 1
            if self._id_lookups <= self.table_after:
                return None
        return strategy.value if strategy.value in self.elements else None

    async def click(self, element: Any) -> None:
        self.actions.append(("click", element))

    async def type_text(self, element: Any, text: str, delay_ms: int = 0) -> None:
        self.actions.append(("type", element, text, delay_ms))

    async def get_page_content(self) -> str:
        return self.content

    async def get_page_text(self) -> str:
        if len(self.texts) > 1:
            return self.texts.pop(0)
        return self.texts[0] if self.texts else ""

    async def screenshot(self, name: str) -> str | None:
        self.screenshots.append(name)
        return None

    async def close(self) -> None:
        self.closed = True


class FakeSMTP:
    """One SMTP connection handed out by ``SMTPRecorder``."""

    def __init__(self, recorder: "SMTPRecorder", host: str, port: int) -> None:
        self.recorder = recorder
        self.host = host
        self.port = port

    def __enter__(self) -> "FakeSMTP":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def ehlo(self) -> None:
        pass

    def has_extn(self, name: str) -> bool:
        return name in self.recorder.extensions

    def starttls(self) -> None:
        self.recorder.starttls_calls += 1

    def login(self, username: str, password: str) -> None:
        if self.recorder.login_error is not None:
            raise self.recorder.login_error
        self.recorder.logins.append((username, password))

    def noop(self) -> None:
        self.recorder.noops += 1

    def send_message(self, msg: Any, from_addr: str, to_addrs: list[str]) -> None:
        self.recorder.sent.append((msg, from_addr, list(to_addrs)))

    def close(self) -> None:
        self.recorder.closed += 1


class SMTPRecorder:
    """Stands in for ``smtplib.SMTP``; connection failures are scripted."""

    def __init__(self, fail_connect: int = 0, extensions: Iterable[str] = ("starttls",)) -> None:
        self.fail_connect = fail_connect
        self.extensions = set(extensions)
        self.login_error: Exception | None = None

        self.connects: list[tuple[str, int, float | None]] = []
        self.sent: list[tuple] = []
        self.logins: list[tuple[str, str]] = []
        self.starttls_calls = 0
        self.noops = 0
        self.closed = 0

    def __call__(self, host: str, port: int, timeout: float | None = None) -> FakeSMTP:
        self.connects.append((host, port, timeout))
        if self.fail_connect > 0:
            self.fail_connect -= 1
            raise smtplib.SMTPServerDisconnected("Connection unexpectedly closed")
        return FakeSMTP(self, host, port)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def store() -> ContractStore:
    return ContractStore.from_url("sqlite://")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def zero_timing() -> TimingProfile:
    return TimingProfile(
        form_load_settle=0,
        pre_type_delay=0,
        per_key_delay_ms=0,
        post_type_settle=0,
        pre_add_click=0,
        post_add_click=0,
        pre_search_click=0,
        results_max_wait=10,
        loading_repoll=3,
        results_repoll=2,
        detail_page_settle=0,
    )


@pytest.fixture
def notifier_config() -> NotifierConfig:
    return NotifierConfig(
        smtp_host="smtp.example.test",
        smtp_port=587,
        smtp_username="monitor",
        smtp_password="secret",
        from_email="monitor@example.test",
        to_emails=["ops@example.test", "sales@example.test"],
    )
