from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from .. import records
from ..auth import get_caller, get_store
from ..policy import ADMIN, Caller, require_role
from ..reports import transactions_workbook
from ..schemas import TransactionIn, TransactionUpdate
from ..store import KeyValueStore

router = APIRouter()


@router.get("/transactions")
def list_transactions(
    caller: Caller = Depends(get_caller),
    store: KeyValueStore = Depends(get_store),
):
    """Admin & dokter melihat semua; pasien hanya transaksinya sendiri."""
    return {"transactions": records.list_transactions(store, caller)}


@router.get("/transactions/summary")
def transactions_summary(
    caller: Caller = Depends(get_caller),
    store: KeyValueStore = Depends(get_store),
):
    transactions = records.list_transactions(store, caller)
    return {"summary": records.summarize_transactions(transactions)}


@router.get("/transactions/export.xlsx")
def export_transactions(
    caller: Caller = Depends(get_caller),
    store: KeyValueStore = Depends(get_store),
):
    """Laporan transaksi untuk dicetak (hanya admin)."""
    require_role(caller, ADMIN, message="Forbidden - Only admin can export transactions")
    output = transactions_workbook(records.list_transactions(store, caller))
    return StreamingResponse(
        output,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": "attachment; filename=laporan_transaksi.xlsx"},
    )


@router.post("/transaction")
def create_transaction(
    body: TransactionIn,
    caller: Caller = Depends(get_caller),
    store: KeyValueStore = Depends(get_store),
):
    return {"transaction": records.create_transaction(store, caller, body)}


@router.put("/transaction/{txn_id}")
def update_transaction(
    txn_id: str,
    body: TransactionUpdate,
    caller: Caller = Depends(get_caller),
    store: KeyValueStore = Depends(get_store),
):
    # partial update: hanya field yang dikirim yang berubah
    return {"transaction": records.update_transaction(store, caller, txn_id, body)}


@router.delete("/transaction/{txn_id}")
def delete_transaction(
    txn_id: str,
    caller: Caller = Depends(get_caller),
    store: KeyValueStore = Depends(get_store),
):
    records.delete_transaction(store, caller, txn_id)
    return {"success": True}
