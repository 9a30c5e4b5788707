"""Parse the PKP result table and decide aggregate eligibility.

Columns are positional: No, NIK, Nama, Status, Keterangan, DTSEN, BSPS, FLPP,
BP2BT. Only the Status column (index 3) drives the decision.
"""

import logging
from dataclasses import asdict, dataclass, fields

from bs4 import BeautifulSoup

from errors import ExtractionError

logger = logging.getLogger(__name__)

RESULT_TABLE_ID = "example1"
STATUS_ELIGIBLE = "eligible"
COLUMN_HEADERS = ["No", "NIK", "Nama", "Status", "Keterangan", "DTSEN", "BSPS", "FLPP", "BP2BT"]


@dataclass(frozen=True)
class EligibilityRow:
    no: str = ""
    national_id: str = ""
    name: str = ""
    status: str = ""
    note: str = ""
    dtsen_flag: str = ""
    bsps_flag: str = ""
    flpp_flag: str = ""
    bp2bt_flag: str = ""

    @classmethod
    def from_cells(cls, cells: list[str]) -> "EligibilityRow":
        names = [f.name for f in fields(cls)]
        return cls(**dict(zip(names, cells)))

    @property
    def is_eligible(self) -> bool:
        return self.status.strip().lower() == STATUS_ELIGIBLE


@dataclass(frozen=True)
class EligibilityResult:
    rows: tuple[EligibilityRow, ...]

    @property
    def eligible(self) -> bool:
        return bool(self.rows) and all(row.is_eligible for row in self.rows)

    def to_dict(self) -> dict:
        return {
            "eligible": self.eligible,
            "headers": COLUMN_HEADERS,
            "rows": [asdict(row) for row in self.rows],
        }


def parse_eligibility_html(html: str) -> EligibilityResult:
    """Extract the result rows from a PKP response page.

    Raises ExtractionError when the table is missing or has no rows.
    """
    soup = BeautifulSoup(html, "html.parser")
    table = soup.find("table", id=RESULT_TABLE_ID)
    if table is None:
        raise ExtractionError("Data tidak ditemukan untuk NIK tersebut.")

    body = table.find("tbody") or table
    rows = []
    for tr in body.find_all("tr"):
        cells = [td.get_text(strip=True) for td in tr.find_all("td")]
        if cells:
            rows.append(EligibilityRow.from_cells(cells))

    if not rows:
        raise ExtractionError("Tidak ada data subsidi untuk NIK tersebut.")

    result = EligibilityResult(rows=tuple(rows))
    logger.debug("Parsed %d eligibility rows (eligible=%s)", len(rows), result.eligible)
    return result
