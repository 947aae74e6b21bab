"""
services/export_service.py
---------------------------
Generates CSV and Excel exports of a user's charges.
"""

import io
from typing import Optional

import pandas as pd

from models.charge import INTERVAL_LABELS
from repositories.charge_repo import ChargeRepository
from repositories.client_repo import ClientRepository
from utils.formatting import format_date
from utils.logger import get_logger

logger = get_logger(__name__)

COLUMNS = ["Cliente", "Valor", "Vencimento", "Status", "Recorrente", "Observações"]


class ExportService:
    """Generates downloadable charge reports in CSV and Excel formats."""

    def __init__(
        self,
        charge_repo: Optional[ChargeRepository] = None,
        client_repo: Optional[ClientRepository] = None,
    ):
        self.charges = charge_repo or ChargeRepository()
        self.clients = client_repo or ClientRepository()

    def build_frame(self, user_id: int, year: Optional[int] = None, month: Optional[int] = None) -> pd.DataFrame:
        """
        Flatten the user's charges (canceled included) into export rows.

        Args:
            user_id: Tenant ID.
            year, month: Optional filter on the due date's month.
        """
        charges = self.charges.get_all(user_id, include_canceled=True)
        if year and month:
            charges = [c for c in charges if (c.due_date.year, c.due_date.month) == (year, month)]
        names = {c.id: c.name for c in self.clients.get_all(user_id)}

        data = [
            {
                "Cliente": names.get(c.client_id, ""),
                "Valor": float(c.amount),
                "Vencimento": format_date(c.due_date),
                "Status": c.status_label,
                "Recorrente": (
                    f"Sim ({INTERVAL_LABELS.get(c.recurrence_interval, c.recurrence_interval)})"
                    if c.is_recurrent else "Não"
                ),
                "Observações": c.notes or "",
            }
            for c in sorted(charges, key=lambda c: (c.due_date, c.id or 0))
        ]
        return pd.DataFrame(data, columns=COLUMNS)

    def export_csv(self, user_id: int, year: Optional[int] = None, month: Optional[int] = None) -> io.BytesIO:
        """
        Export charges as a CSV file.

        Returns:
            A BytesIO buffer containing the CSV data.
        """
        df = self.build_frame(user_id, year, month)
        buffer = io.BytesIO()
        df.to_csv(buffer, index=False, encoding="utf-8-sig")
        buffer.seek(0)
        logger.info(f"Exported {len(df)} charges as CSV for user {user_id}")
        return buffer

    def export_excel(self, user_id: int, year: Optional[int] = None, month: Optional[int] = None) -> io.BytesIO:
        """
        Export charges as an Excel (.xlsx) file with a per-status summary sheet.

        Returns:
            A BytesIO buffer containing the Excel data.
        """
        df = self.build_frame(user_id, year, month)

        buffer = io.BytesIO()
        with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
            df.to_excel(writer, sheet_name="Cobranças", index=False)

            if not df.empty:
                summary = df.groupby("Status")["Valor"].agg(["count", "sum"]).reset_index()
                summary.columns = ["Status", "Quantidade", "Total"]
                summary.to_excel(writer, sheet_name="Resumo", index=False)

        buffer.seek(0)
        logger.info(f"Exported {len(df)} charges as Excel for user {user_id}")
        return buffer
