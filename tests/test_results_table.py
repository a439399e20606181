"""Tests for results table extraction."""
import pytest

from conftest import DETAIL_URL, HEADER_ROW, result_row, results_page
from contractwatch.core.config.models import BASE_URL, SEARCH_FORM_URL, PortalConfig
from contractwatch.core.extract.base import ExtractionError
from contractwatch.core.extract.results_table import ResultsTableExtractor


def _page():
    return results_page([
        result_row("10892/2024Suministro de pantallas LED", "Publicada", href=DETAIL_URL.format("a1")),
        result_row("S-02968-2025Adquisición de videowall", "Evaluación Previa", body="Diputación de Cádiz"),
        result_row("2024/25 Pantallas para pabellón", "Adjudicada"),
        result_row("13/25 Pantalla exterior", "Resuelta"),
    ])


def test_filtered_pass_keeps_allowed_statuses():
    """Only Publicada and Evaluación Previa rows survive the filtered pass."""
    contracts = ResultsTableExtractor().extract_contracts(_page())

    assert [c.id for c in contracts] == ["10892/2024", "S-02968-2025"]
    assert contracts[0].description == "Suministro de pantallas LED"
    assert contracts[0].contract_type == "Suministros"
    assert contracts[0].amount == "45.000,00 EUR"
    assert contracts[0].submission_date == "15/03/2025"
    assert contracts[1].contracting_body == "Diputación de Cádiz"


def test_unfiltered_pass_keeps_every_valid_row():
    """The unfiltered pass ignores the status filter."""
    contracts = ResultsTableExtractor().extract_all(_page())

    assert [c.status for c in contracts] == ["Publicada", "Evaluación Previa", "Adjudicada", "Resuelta"]


def test_status_filter_is_case_insensitive():
    """Status comparison ignores case and surrounding whitespace."""
    html = results_page([result_row("10892/2024Suministro", "  PUBLICADA ")])
    contracts = ResultsTableExtractor().extract_contracts(html)

    assert len(contracts) == 1


def test_extract_reports_skipped_rows():
    """Header and filtered rows are reported with their reason."""
    result = ResultsTableExtractor().extract(_page())

    assert result.row_count == 5
    assert len(result.skipped_for("header")) == 1
    assert [row.row_index for row in result.skipped_for("status")] == [3, 4]
    assert result.ok


def test_short_rows_dropped_before_header_check():
    """A short first row does not hide the header row that follows it."""
    html = results_page([
        "<tr><th>Listado</th></tr>",
        "<tr><td>Mostrando 1 resultado</td></tr>",
        HEADER_ROW,
        result_row("10892/2024Suministro"),
    ], header=False)
    result = ResultsTableExtractor().extract(html)

    assert len(result.skipped_for("short")) == 2
    assert len(result.skipped_for("header")) == 1
    assert [c.id for c in result.contracts] == ["10892/2024"]


def test_header_check_only_applies_to_first_valid_row():
    """A data row mentioning a header word is kept when it is not first."""
    html = results_page([
        result_row("10892/2024Suministro", contract_type="Suministros"),
        result_row("13/25 Pantalla", body="Órgano de Contratación del Ministerio"),
    ], header=False)

    contracts = ResultsTableExtractor().extract_contracts(html)
    assert [c.id for c in contracts] == ["10892/2024", "13/25"]


def test_missing_table_raises():
    """A page without the results table is an extraction error."""
    with pytest.raises(ExtractionError) as exc_info:
        ResultsTableExtractor().extract("<html><body><p>Sin resultados</p></body></html>", url="https://x")

    assert "myTablaBusquedaCustom" in exc_info.value.message
    assert exc_info.value.url == "https://x"


def test_unparseable_html_raises():
    """Empty documents are reported as extraction errors."""
    with pytest.raises(ExtractionError):
        ResultsTableExtractor().extract("")


def test_table_id_is_configurable():
    """The results table id comes from the portal settings."""
    portal = PortalConfig(results_table_id="otraTabla")
    html = results_page([result_row("10892/2024Suministro")], table_id="otraTabla")

    assert len(ResultsTableExtractor(portal).extract_contracts(html)) == 1


def test_first_cell_prefers_detail_link():
    """The detail-licitacion anchor wins over other anchors in the first cell."""
    cell = '<a href="/ayuda">?</a><a href="/wps/poc?uri=deeplink:detalle_licitacion&amp;idEvl=b2">10892/2024Suministro</a>'
    html = results_page([result_row(cell)], header=False)

    contract = ResultsTableExtractor().extract_contracts(html)[0]
    assert contract.link == BASE_URL + "/wps/poc?uri=deeplink:detalle_licitacion&idEvl=b2"


def test_row_without_link():
    """Rows without an anchor have no detail link."""
    html = results_page([result_row("10892/2024Suministro")], header=False)

    assert ResultsTableExtractor().extract_contracts(html)[0].link is None


@pytest.mark.parametrize(
    "href, expected",
    [
        ("#", SEARCH_FORM_URL),
        ("#top", SEARCH_FORM_URL),
        ("/wps/poc?id=1", BASE_URL + "/wps/poc?id=1"),
        ("detalle.jsp?id=1", BASE_URL + "/detalle.jsp?id=1"),
        ("https://otro.es/x", "https://otro.es/x"),
    ],
)
def test_resolve_detail_link(href, expected):
    """Relative and fragment links resolve against the portal."""
    assert ResultsTableExtractor().resolve_detail_link(href) == expected


def test_rows_share_one_scrape_timestamp():
    """All contracts from one pass carry the same scrape time."""
    contracts = ResultsTableExtractor().extract_all(_page())

    assert len({c.scraped_at for c in contracts}) == 1


def test_filtered_is_subset_of_unfiltered():
    """The filtered pass equals the unfiltered pass restricted to allowed statuses."""
    extractor = ResultsTableExtractor()
    filtered = extractor.extract_contracts(_page())
    unfiltered = extractor.extract_all(_page())

    allowed = {"publicada", "evaluación previa"}
    assert [c.id for c in filtered] == [c.id for c in unfiltered if c.status.lower() in allowed]


def test_five_cell_row_is_in_neither_pass():
    """A row one cell short is dropped from both passes."""
    five_cells = "<tr><td>10892/2024Suministro</td><td>Suministros</td><td>Publicada</td><td>1</td><td>x</td></tr>"
    html = results_page([five_cells, result_row("13/25 Pantalla")])
    extractor = ResultsTableExtractor()

    assert [c.id for c in extractor.extract_contracts(html)] == ["13/25"]
    assert [c.id for c in extractor.extract_all(html)] == ["13/25"]
