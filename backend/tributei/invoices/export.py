"""
Spreadsheet (XLSX) export of an analysed NF-e.

One row per line item: document fields, resolution status with its match
source, CST / cClassTrib and final rate per tax, and the IBS / CBS amounts on
the line total (vProd). Items that were not identified keep "-" in the tax
columns.
"""
import io
import logging
import re
from typing import Any

from openpyxl import Workbook
from openpyxl.styles import Font

from tributei.invoices.schemas import InvoiceAnalysis, LineItem, LineItemStatus

logger = logging.getLogger(__name__)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
SHEET_TITLE = "Análise Tributária"
EMPTY_CELL = "-"

COLUMNS = [
    "Código XML",
    "Descrição",
    "NCM XML",
    "EAN XML",
    "Qtd",
    "Vlr Unit",
    "Vlr Total",
    "Status Busca",
    "CST IBS",
    "cClass IBS",
    "IBS (%)",
    "CST CBS",
    "cClass CBS",
    "CBS (%)",
    "IBS (R$)",
    "CBS (R$)",
    "Total Imposto (R$)",
]

PERCENT_COLUMNS = ("IBS (%)", "CBS (%)")
MONEY_COLUMNS = ("Vlr Unit", "Vlr Total", "IBS (R$)", "CBS (R$)", "Total Imposto (R$)")


def export_file_name(analysis: InvoiceAnalysis) -> str:
    """
    Examples:
        >>> export_file_name(InvoiceAnalysis(file_name="nota 123.xml"))
        'Analise_nota_123.xlsx'
    """
    stem = re.sub(r"\.xml$", "", analysis.file_name, flags=re.IGNORECASE)
    # Nagłówek Content-Disposition: tylko ASCII
    stem = re.sub(r"[^A-Za-z0-9._-]+", "_", stem).strip("_") or "nfe"
    return f"Analise_{stem}.xlsx"


def _status_label(item: LineItem) -> str:
    if item.status == LineItemStatus.FOUND:
        found_by = item.found_by.value if item.found_by else EMPTY_CELL
        return f"Localizado ({found_by})"
    return "Não Localizado"


def _item_row(item: LineItem) -> list[Any]:
    ncm = item.ncm.zfill(8) if item.ncm.isdigit() else item.ncm
    row: list[Any] = [
        item.code,
        item.description,
        ncm,
        item.barcode,
        item.quantity,
        item.unit_price,
        item.total_price,
        _status_label(item),
    ]

    taxes = item.taxes
    if taxes is None:
        return row + [EMPTY_CELL] * (len(COLUMNS) - len(row))

    ibs_amount = round(item.total_price * taxes.ibs.final_rate, 2)
    cbs_amount = round(item.total_price * taxes.cbs.final_rate, 2)

    return row + [
        taxes.ibs.cst,
        taxes.ibs.cclass,
        taxes.ibs.final_rate,
        taxes.cbs.cst,
        taxes.cbs.cclass,
        taxes.cbs.final_rate,
        ibs_amount,
        cbs_amount,
        round(ibs_amount + cbs_amount, 2),
    ]


def build_analysis_workbook(analysis: InvoiceAnalysis) -> Workbook:
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = SHEET_TITLE

    sheet.append(COLUMNS)
    for cell in sheet[1]:
        cell.font = Font(bold=True)

    for item in analysis.items:
        sheet.append(_item_row(item))

    # Stawki jako ułamki, formatowane jako procent
    for index, header in enumerate(COLUMNS, start=1):
        if header in PERCENT_COLUMNS:
            number_format = "0.00%"
        elif header in MONEY_COLUMNS:
            number_format = "#,##0.00"
        else:
            continue
        for (cell,) in sheet.iter_rows(min_row=2, min_col=index, max_col=index):
            if isinstance(cell.value, (int, float)):
                cell.number_format = number_format

    sheet.freeze_panes = "A2"
    return workbook


def export_analysis_xlsx(analysis: InvoiceAnalysis) -> bytes:
    """Serializes the analysis to XLSX bytes (sheet 'Análise Tributária')."""
    buffer = io.BytesIO()
    build_analysis_workbook(analysis).save(buffer)

    logger.info(f"Exported {len(analysis.items)} items of {analysis.file_name} to XLSX")
    return buffer.getvalue()
