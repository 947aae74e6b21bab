from datetime import date, datetime, timezone

import pandas as pd

from fakes import USER_ID
from services.export_service import COLUMNS, ExportService


def seed(charge_service, make_charge):
    paid = make_charge(date(2024, 2, 1), amount="100", interval="monthly", notes="Mensalidade")
    charge_service.confirm_payment(paid.id, paid_at=datetime(2024, 2, 1, tzinfo=timezone.utc))
    canceled = make_charge(date(2024, 2, 15), amount="20")
    charge_service.cancel(canceled.id, USER_ID)


def test_frame_lists_all_charges_with_labels(charge_repo, client_repo, charge_service, make_charge):
    seed(charge_service, make_charge)

    df = ExportService(charge_repo, client_repo).build_frame(USER_ID)

    assert list(df.columns) == COLUMNS
    assert len(df) == 3
    assert set(df["Status"]) == {"Pago", "Cancelada", "Pendente"}
    first = df.iloc[0]
    assert first["Cliente"] == "Maria Souza"
    assert first["Vencimento"] == "01/02/2024"
    assert first["Recorrente"] == "Sim (mensal)"
    assert first["Observações"] == "Mensalidade"


def test_frame_month_filter(charge_repo, client_repo, charge_service, make_charge):
    seed(charge_service, make_charge)

    df = ExportService(charge_repo, client_repo).build_frame(USER_ID, 2024, 3)

    assert len(df) == 1
    assert df.iloc[0]["Vencimento"] == "01/03/2024"


def test_csv_export(charge_repo, client_repo, charge_service, make_charge):
    seed(charge_service, make_charge)

    buffer = ExportService(charge_repo, client_repo).export_csv(USER_ID)

    text = buffer.getvalue().decode("utf-8-sig")
    assert text.splitlines()[0] == ",".join(COLUMNS)
    assert "Maria Souza" in text


def test_excel_export_has_summary_sheet(charge_repo, client_repo, charge_service, make_charge):
    seed(charge_service, make_charge)

    buffer = ExportService(charge_repo, client_repo).export_excel(USER_ID)

    sheets = pd.read_excel(buffer, sheet_name=None)
    assert set(sheets) == {"Cobranças", "Resumo"}
    assert len(sheets["Cobranças"]) == 3


def test_empty_export(charge_repo, client_repo):
    df = ExportService(charge_repo, client_repo).build_frame(USER_ID)
    assert df.empty
    assert list(df.columns) == COLUMNS
