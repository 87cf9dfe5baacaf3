"""
NF-e (Nota Fiscal eletrônica) XML parser.

Accepts both the authorized envelope (nfeProc/NFe/infNFe) and a bare
NFe/infNFe document. Namespaces are dropped so paths stay readable.
"""
import logging
from typing import Optional, Union
from xml.etree.ElementTree import Element

import defusedxml.ElementTree as DefusedET
from defusedxml import DefusedXmlException

from tributei.common.normalization import parse_number
from tributei.invoices.exceptions import InvoiceParseError
from tributei.invoices.schemas import InvoiceAnalysis, LineItem

logger = logging.getLogger(__name__)

DEFAULT_ORIGIN = "0"


def _strip_namespaces(root: Element) -> Element:
    # {http://www.portalfiscal.inf.br/nfe}infNFe -> infNFe
    for element in root.iter():
        if isinstance(element.tag, str) and "}" in element.tag:
            element.tag = element.tag.split("}", 1)[1]
    return root


def _text(element: Optional[Element], path: str, default: str = "") -> str:
    if element is None:
        return default
    found = element.find(path)
    if found is None or found.text is None:
        return default
    return found.text.strip()


def _find_inf_nfe(root: Element) -> Element:
    if root.tag == "nfeProc":
        inf_nfe = root.find("NFe/infNFe")
    elif root.tag == "NFe":
        inf_nfe = root.find("infNFe")
    else:
        inf_nfe = None

    if inf_nfe is None:
        raise InvoiceParseError("Formato de XML NFe não reconhecido.")
    return inf_nfe


def _parse_origin(det: Element) -> str:
    """Origin of goods from the first ICMS group (ICMS00, ICMS20, ICMSSN102, ...)."""
    icms = det.find("imposto/ICMS")
    if icms is None or len(icms) == 0:
        return DEFAULT_ORIGIN
    return _text(icms[0], "orig", DEFAULT_ORIGIN) or DEFAULT_ORIGIN


def _parse_item(det: Element, prod: Element) -> LineItem:
    return LineItem(
        code=_text(prod, "cProd"),
        description=_text(prod, "xProd"),
        ncm=_text(prod, "NCM"),
        barcode=_text(prod, "cEAN"),
        quantity=parse_number(_text(prod, "qCom")),
        unit_price=parse_number(_text(prod, "vUnCom")),
        total_price=parse_number(_text(prod, "vProd")),
        discount=parse_number(_text(prod, "vDesc", "0")),
        origin=_parse_origin(det),
    )


def parse_nfe_xml(content: Union[str, bytes], file_name: str) -> InvoiceAnalysis:
    """
    Parses an NF-e XML document into an InvoiceAnalysis with unresolved items.

    Args:
        content: Raw XML (str or bytes)
        file_name: Original file name, kept for display

    Returns:
        InvoiceAnalysis with every item in 'searching' state

    Raises:
        InvoiceParseError: If the XML is malformed, unsafe or not an NF-e
    """
    try:
        root = DefusedET.fromstring(content)
    except DefusedXmlException as e:
        logger.warning(f"Blocked potentially malicious XML in {file_name}: {e}")
        raise InvoiceParseError(f"XML rejeitado por motivo de segurança: {e}") from e
    except DefusedET.ParseError as e:
        raise InvoiceParseError(f"XML malformado: {e}") from e

    inf_nfe = _find_inf_nfe(_strip_namespaces(root))

    items = []
    for index, det in enumerate(inf_nfe.findall("det"), start=1):
        prod = det.find("prod")
        if prod is None:
            logger.warning(f"{file_name}: det #{index} has no <prod> element, skipping")
            continue
        items.append(_parse_item(det, prod))

    issue_date = _text(inf_nfe, "ide/dhEmi") or _text(inf_nfe, "ide/dEmi") or None

    analysis = InvoiceAnalysis(
        file_name=file_name,
        issue_date=issue_date,
        total_value=parse_number(_text(inf_nfe, "total/ICMSTot/vNF")),
        items=items,
    )

    logger.info(f"Parsed NF-e {file_name}: {len(items)} items, total={analysis.total_value:.2f}")
    return analysis
