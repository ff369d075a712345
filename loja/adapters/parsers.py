"""
Utilidades de parsing para valores digitados nos formulários.

Os valores chegam como texto (terminal, planilha) e seguem o formato
brasileiro: dinheiro com vírgula decimal e ponto de milhar
("R$ 1.234,56"), datas em DD/MM/AAAA. Todas as funções levantam
``ErroValidacao`` quando o texto não pode ser interpretado; nenhuma
delas devolve um valor "chutado".
"""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any, Dict, Optional

from loja.domain.errors import ErroValidacao

_MOEDA_RE = re.compile(r"^[-+]?\d+(?:[.,]\d+)*$")

_SIM = {"1", "true", "t", "sim", "s", "y", "yes"}
_NAO = {"0", "false", "f", "nao", "não", "n", "no"}


def parse_dinheiro(txt: Any) -> float:
    """Interpreta um valor monetário.

    Exemplos:
        "10,50"      → 10.5
        "R$ 1.234,56" → 1234.56
        "1,234.56"   → 1234.56
        "10.5"       → 10.5
        "1.000"      → 1000.0   (ponto seguido de 3 dígitos é milhar)

    Args:
        txt: Texto (ou número) a interpretar.

    Returns:
        O valor como float, arredondado em centavos.
    """
    if isinstance(txt, (int, float)) and not isinstance(txt, bool):
        return round(float(txt), 2)
    s = str(txt or "").strip().replace("R$", "").replace(" ", "")
    if not s or not _MOEDA_RE.match(s):
        raise ErroValidacao(f"Valor monetário inválido: {txt!r}.")
    if "," in s and "." in s:
        # o separador que aparece por último é o decimal
        if s.rfind(",") > s.rfind("."):
            s = s.replace(".", "").replace(",", ".")
        else:
            s = s.replace(",", "")
    elif "," in s:
        if s.count(",") > 1:
            raise ErroValidacao(f"Valor monetário inválido: {txt!r}.")
        s = s.replace(",", ".")
    elif s.count(".") > 1 or re.search(r"\.\d{3}$", s):
        s = s.replace(".", "")
    return round(float(s), 2)


def parse_quantidade(txt: Any) -> int:
    """Quantidade inteira positiva ("3", "3.0"); rejeita frações e zero."""
    s = str(txt if txt is not None else "").strip().replace(",", ".")
    try:
        f = float(s)
    except ValueError:
        raise ErroValidacao(f"Quantidade inválida: {txt!r}.") from None
    if not f.is_integer() or f <= 0:
        raise ErroValidacao(f"A quantidade deve ser um inteiro positivo: {txt!r}.")
    return int(f)


def parse_data(txt: Any) -> Optional[str]:
    """Normaliza ``YYYY-MM-DD`` ou ``DD/MM/AAAA`` para ISO; vazio vira None."""
    if txt is None:
        return None
    if isinstance(txt, datetime):
        return txt.date().isoformat()
    if isinstance(txt, date):
        return txt.isoformat()
    s = str(txt).strip()
    if not s:
        return None
    for fmt in ("%Y-%m-%d", "%d/%m/%Y"):
        try:
            return datetime.strptime(s[:10], fmt).date().isoformat()
        except ValueError:
            continue
    raise ErroValidacao(f"Data inválida: {txt!r}. Use AAAA-MM-DD ou DD/MM/AAAA.")


def parse_sim_nao(txt: Any) -> bool:
    if isinstance(txt, bool):
        return txt
    s = str(txt if txt is not None else "").strip().lower()
    if s in _SIM:
        return True
    if s in _NAO:
        return False
    raise ErroValidacao(f"Responda sim ou não: {txt!r}.")


def parse_item_encomenda(txt: Any) -> Dict[str, Any]:
    """Item de encomenda no formato ``produto;quantidade;custo``.

    O custo é opcional: ``"Bolo de pote;3;4,50"`` ou ``"Brigadeiro;50"``.
    """
    partes = [p.strip() for p in str(txt or "").split(";")]
    if len(partes) not in (2, 3) or not partes[0]:
        raise ErroValidacao(f"Item inválido: {txt!r}. Use produto;quantidade;custo.")
    return {
        "product_name": partes[0],
        "quantity": parse_quantidade(partes[1]),
        "cost_price": parse_dinheiro(partes[2]) if len(partes) == 3 and partes[2] else 0.0,
    }
