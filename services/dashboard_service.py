"""
services/dashboard_service.py
-----------------------------
Overview numbers for a user's account.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from models.charge import STATUS_OVERDUE, STATUS_PAID, STATUS_PENDING
from repositories.charge_repo import ChargeRepository
from repositories.client_repo import ClientRepository
from utils.formatting import format_currency


@dataclass
class DashboardStats:
    total_clients: int = 0
    total_charges: int = 0
    paid_charges: int = 0
    pending_charges: int = 0
    overdue_charges: int = 0
    canceled_charges: int = 0
    amount_paid: Decimal = Decimal("0")
    amount_pending: Decimal = Decimal("0")
    amount_overdue: Decimal = Decimal("0")


class DashboardService:
    """Computes dashboard statistics; canceled charges are counted but never summed."""

    def __init__(
        self,
        client_repo: Optional[ClientRepository] = None,
        charge_repo: Optional[ChargeRepository] = None,
    ):
        self.clients = client_repo or ClientRepository()
        self.charges = charge_repo or ChargeRepository()

    def get_stats(self, user_id: int) -> DashboardStats:
        stats = DashboardStats(total_clients=len(self.clients.get_all(user_id)))
        for charge in self.charges.get_all(user_id, include_canceled=True):
            if charge.is_canceled:
                stats.canceled_charges += 1
                continue
            stats.total_charges += 1
            if charge.status == STATUS_PAID:
                stats.paid_charges += 1
                stats.amount_paid += charge.amount
            elif charge.status == STATUS_OVERDUE:
                stats.overdue_charges += 1
                stats.amount_overdue += charge.amount
            elif charge.status == STATUS_PENDING:
                stats.pending_charges += 1
                stats.amount_pending += charge.amount
        return stats

    def render(self, user_id: int) -> str:
        """Dashboard as a chat message."""
        s = self.get_stats(user_id)
        return (
            "📊 *Visão geral*\n\n"
            f"👥 Clientes: {s.total_clients}\n"
            f"🧾 Cobranças ativas: {s.total_charges}\n"
            f"✅ Pagas: {s.paid_charges} ({format_currency(s.amount_paid)})\n"
            f"⏳ Pendentes: {s.pending_charges} ({format_currency(s.amount_pending)})\n"
            f"⚠️ Vencidas: {s.overdue_charges} ({format_currency(s.amount_overdue)})\n"
            f"🚫 Canceladas: {s.canceled_charges}"
        )
