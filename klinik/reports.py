import io
from typing import Any, Dict, List
import pandas as pd

from .records import summarize_transactions


def transactions_workbook(transactions: List[Dict[str, Any]]) -> io.BytesIO:
    """
    Laporan transaksi (Excel):
    - Sheet 'Transaksi': satu baris per transaksi, terbaru di atas
    - Sheet 'Ringkasan': total pendapatan (Lunas) & total belum bayar
    """
    rows = sorted(transactions, key=lambda t: t.get("created_at") or "", reverse=True)
    data = [{
        "ID": t.get("id"),
        "Tanggal": t.get("created_at"),
        "Pasien": t.get("pasien_nama"),
        "Obat": t.get("obat"),
        "Harga": t.get("harga"),
        "Status": t.get("status_pembayaran"),
        "Dibuat Oleh": t.get("created_by"),
    } for t in rows]
    columns = ["ID", "Tanggal", "Pasien", "Obat", "Harga", "Status", "Dibuat Oleh"]

    summary = summarize_transactions(transactions)
    ringkasan = pd.DataFrame([
        {"Keterangan": "Jumlah Transaksi", "Nilai": summary["jumlah_transaksi"]},
        {"Keterangan": "Total Pendapatan (Lunas)", "Nilai": summary["total_pendapatan"]},
        {"Keterangan": "Total Belum Bayar", "Nilai": summary["total_belum_bayar"]},
    ])

    output = io.BytesIO()
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        pd.DataFrame(data, columns=columns).to_excel(writer, index=False, sheet_name="Transaksi")
        ringkasan.to_excel(writer, index=False, sheet_name="Ringkasan")
    output.seek(0)
    return output
