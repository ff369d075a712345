"""
Aggregation formulas for the store reports.

These functions fold lists of already-fetched rows (sales, expenses,
products) into totals, rankings and per-period buckets. Rows may be plain
dicts or dataclasses.

All functions are pure: they depend solely on their inputs and do
not modify any external state. This makes them safe to unit test
individually.
"""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import asdict, is_dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Union

from loja.domain.models import Direcao
from loja.domain.policies import direcao_da_categoria

Row = Union[Dict[str, Any], Any]


def _as_dict(row: Any) -> Dict[str, Any]:
    if isinstance(row, dict):
        return row
    if is_dataclass(row):
        return asdict(row)
    raise TypeError("row must be dict or dataclass")


def _num(value: Any) -> float:
    if value is None:
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def somar(rows: Iterable[Row], campo: str) -> float:
    """Return the sum of ``campo`` across ``rows`` (missing values count as 0)."""
    return sum(_num(_as_dict(r).get(campo)) for r in rows)


def somar_produto(rows: Iterable[Row], campo_a: str, campo_b: str) -> float:
    """Return ``Σ row[campo_a] * row[campo_b]``, e.g. cost × quantity."""
    total = 0.0
    for r in rows:
        d = _as_dict(r)
        total += _num(d.get(campo_a)) * _num(d.get(campo_b))
    return total


def agrupar_somas(
    rows: Iterable[Row],
    chave: Union[str, Callable[[Dict[str, Any]], Any]],
    campos: Sequence[str],
    contar_como: Optional[str] = "count",
) -> List[Dict[str, Any]]:
    """Group rows by a key and sum the given fields.

    Parameters
    ----------
    rows:
        Rows to fold.
    chave:
        Column name, or a function of the row dict, producing the group key.
    campos:
        Numeric fields to sum inside each group.
    contar_como:
        Name of the per-group row counter; ``None`` disables it.

    Returns
    -------
    list of dict
        One dict per group, ``{"chave": key, <campo>: sum, ...}``, in the
        order each key was first seen.
    """
    grupos: "OrderedDict[Any, Dict[str, Any]]" = OrderedDict()
    for r in rows:
        d = _as_dict(r)
        k = chave(d) if callable(chave) else d.get(chave)
        g = grupos.get(k)
        if g is None:
            g = {"chave": k, **{c: 0.0 for c in campos}}
            if contar_como:
                g[contar_como] = 0
            grupos[k] = g
        for c in campos:
            g[c] += _num(d.get(c))
        if contar_como:
            g[contar_como] += 1
    return list(grupos.values())


def top_n(rows: Sequence[Row], metrica: Union[str, Callable[[Dict[str, Any]], float]], n: Optional[int] = None) -> List[Any]:
    """Return the ``n`` rows with the highest metric, descending.

    Python's sort is stable, so rows with equal metrics keep their input
    order (usually the fetch order, newest first).
    """
    def _key(r):
        d = _as_dict(r)
        return _num(metrica(d) if callable(metrica) else d.get(metrica))

    ordenado = sorted(rows, key=_key, reverse=True)
    return ordenado if n is None else ordenado[: max(int(n), 0)]


def valor_recebido(venda: Row) -> float:
    """Amount of a sale that counts as cash received.

    A sale flagged ``payment_received`` counts in full; otherwise only its
    ``partial_payment_amount`` (0 when there is none).
    """
    d = _as_dict(venda)
    if d.get("payment_received") in (None, True, 1, "1"):
        return _num(d.get("total_price"))
    return _num(d.get("partial_payment_amount"))


def _depois_do_corte(data: Optional[str], data_corte: Optional[str]) -> bool:
    if not data_corte:
        return True
    if not data:
        return False
    return str(data)[:10] >= str(data_corte)[:10]


def eh_entrada(despesa: Row) -> bool:
    """True for cash-in expense rows.

    Uses ``direction`` when the row carries one; otherwise the category
    decides (only "Entrada de Caixa" is an inflow).
    """
    d = _as_dict(despesa)
    direcao = d.get("direction")
    if direcao:
        return direcao == Direcao.ENTRADA.value
    return direcao_da_categoria(d.get("category") or "") is Direcao.ENTRADA


def saldo_caixa(vendas: Iterable[Row], despesas: Iterable[Row], data_corte: Optional[str] = None) -> float:
    """Cash balance: received sales − outflow expenses + inflow expenses.

    Parameters
    ----------
    vendas:
        Sale rows (``total_price``, ``payment_received``,
        ``partial_payment_amount``, ``sale_date``).
    despesas:
        Expense rows (``amount``, ``expense_date`` and ``direction`` or
        ``category``).
    data_corte:
        ISO date; only rows dated on or after it are counted.

    Returns
    -------
    float
        The balance, rounded to cents.
    """
    recebido = sum(
        valor_recebido(v) for v in vendas
        if _depois_do_corte(_as_dict(v).get("sale_date"), data_corte)
    )
    entradas = 0.0
    saidas = 0.0
    for r in despesas:
        d = _as_dict(r)
        if not _depois_do_corte(d.get("expense_date"), data_corte):
            continue
        if eh_entrada(d):
            entradas += _num(d.get("amount"))
        else:
            saidas += _num(d.get("amount"))
    return round(recebido - saidas + entradas, 2)


def margem(lucro: float, receita: float) -> float:
    """Profit margin in percent (0 when there is no revenue)."""
    return (lucro / receita) * 100.0 if receita > 0 else 0.0
