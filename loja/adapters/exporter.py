# loja/adapters/exporter.py
"""
Exportação de listagens para planilhas XLSX.

- exportar_excel(): grava uma lista de dicts numa aba de um arquivo XLSX
  (pandas + openpyxl); as chaves do primeiro dict viram o cabeçalho.
- formatar_produtos(): monta as linhas da planilha de produtos.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

import pandas as pd

from loja.domain.models import Produto
from loja.infra.logger import log_system_event


def _moeda(valor: Any) -> str:
    return f"R$ {float(valor or 0):.2f}"


def exportar_excel(
    linhas: Sequence[Mapping[str, Any]],
    caminho: str,
    aba: str = "Planilha1",
) -> Path:
    """Grava ``linhas`` em ``caminho`` (a extensão .xlsx é acrescentada se faltar)."""
    destino = Path(caminho)
    if destino.suffix.lower() != ".xlsx":
        destino = destino.with_name(destino.name + ".xlsx")
    destino.parent.mkdir(parents=True, exist_ok=True)

    df = pd.DataFrame([dict(r) for r in linhas])
    # nomes de aba do Excel: no máximo 31 caracteres
    df.to_excel(destino, sheet_name=aba[:31] or "Planilha1", index=False, engine="openpyxl")
    log_system_event("export_excel", {"arquivo": str(destino), "linhas": len(df), "aba": aba})
    return destino


def formatar_produtos(
    produtos: Iterable[Produto],
    categorias: Optional[Mapping[str, str]] = None,
) -> List[Dict[str, Any]]:
    """Linhas da planilha de produtos (valores monetários já formatados)."""
    categorias = categorias or {}
    return [
        {
            "Nome": p.name,
            "Categoria": categorias.get(p.category_id or "", "Sem categoria"),
            "Preço de Custo": _moeda(p.cost_price),
            "Preço de Venda": _moeda(p.sale_price),
            "Quantidade": p.quantity,
            "Status": "Sem estoque" if p.quantity == 0 else "Disponível",
            "Investimento Total": _moeda(float(p.cost_price or 0) * p.quantity),
            "Valor Total": _moeda(float(p.sale_price or 0) * p.quantity),
        }
        for p in produtos
    ]
