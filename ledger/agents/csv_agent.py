"""CsvAgent: deterministic extraction for tabular statements with recognizable headers."""

import io

import pandas as pd

from ledger.agents.base import BaseAgent, StatementImage
from ledger.agents.registry import AgentRegistry
from ledger.core.errors import ExtractionError
from ledger.core.settings import Settings
from ledger.core.utils import get_logger

logger = get_logger("ledger.agent")

DATE_HEADERS = ("date", "data", "fecha", "datum", "posted", "booking")
DESCRIPTION_HEADERS = ("description", "descri", "payee", "memo", "details", "narrative", "merchant", "name")
AMOUNT_HEADERS = ("amount", "valor", "betrag", "montant")
DEBIT_HEADERS = ("debit", "débito", "debito", "withdrawal", "money out", "saída", "saida")
CREDIT_HEADERS = ("credit", "crédito", "credito", "deposit", "money in", "entrada")
CATEGORY_HEADERS = ("category", "categoria")


def _find_column(columns: list[str], keywords: tuple[str, ...], taken: set[str]) -> str | None:
    """Prefer an exact header match, then a header containing a keyword; each column is used once."""
    free = [c for c in columns if c not in taken]
    found = next((c for c in free if c.strip().lower() in keywords), None)
    if found is None:
        found = next((c for c in free if any(k in c.strip().lower() for k in keywords)), None)
    if found is not None:
        taken.add(found)
    return found


def _cell(value: object) -> str:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return ""
    return str(value).strip()


class CsvAgent(BaseAgent):
    """Read date/description/amount (or debit/credit) columns straight out of a CSV or TSV statement."""

    @classmethod
    def from_settings(cls, settings: Settings) -> "CsvAgent":
        """Build the agent; it needs no client."""
        _ = settings
        return cls()

    def extract_text(self, content: str, file_type: str) -> list[dict]:
        """Parse the statement with pandas and map its columns onto transaction rows."""
        sep = "\t" if file_type == "tsv" else None
        try:
            frame = pd.read_csv(io.StringIO(content), sep=sep, engine="python", dtype=str, skip_blank_lines=True)
        except (pd.errors.ParserError, pd.errors.EmptyDataError, ValueError) as exc:
            msg = f"Could not read {file_type} statement: {exc}"
            raise ExtractionError(msg) from exc

        frame.columns = [str(c) for c in frame.columns]
        columns = list(frame.columns)
        taken: set[str] = set()
        amount_col = _find_column(columns, AMOUNT_HEADERS, taken)
        debit_col = _find_column(columns, DEBIT_HEADERS, taken)
        credit_col = _find_column(columns, CREDIT_HEADERS, taken)
        category_col = _find_column(columns, CATEGORY_HEADERS, taken)
        date_col = _find_column(columns, DATE_HEADERS, taken)
        description_col = _find_column(columns, DESCRIPTION_HEADERS, taken)
        if not date_col or not description_col or not (amount_col or debit_col or credit_col):
            msg = f"Statement headers not recognized: {columns}"
            raise ExtractionError(msg)

        rows = []
        for record in frame.to_dict(orient="records"):
            amount = _cell(record.get(amount_col)) if amount_col else ""
            if not amount:
                debit = _cell(record.get(debit_col)) if debit_col else ""
                credit = _cell(record.get(credit_col)) if credit_col else ""
                if debit:
                    amount = "-" + debit.lstrip("+-")
                elif credit:
                    amount = credit.lstrip("+")
            rows.append(
                {
                    "date": _cell(record.get(date_col)),
                    "description": _cell(record.get(description_col)),
                    "amount": amount,
                    "category": _cell(record.get(category_col)) if category_col else "",
                }
            )
        logger.info(f"CSV agent read {len(rows)} rows using columns date={date_col!r}, description={description_col!r}")
        return rows

    def extract_images(self, images: list[StatementImage]) -> list[dict]:
        """Images need the vision model."""
        msg = f"The csv extraction agent cannot read {len(images)} statement image(s)"
        raise ExtractionError(msg)


AgentRegistry.register("csv", CsvAgent)
