# loja/usecases/relatorios.py
"""
Relatórios da loja:
- dashboard (contagens, receita, investimento, valor em estoque, vendas recentes)
- vendas por dia / por produto / por cliente (últimos N dias)
- custo das vendas (lucro e margem por venda)
- saldo de caixa (vendas recebidas - saídas + entradas)
- auditoria (somente administradores)
- encomendas e pedidos de produto
- investimento líquido (custo dos produtos - reinvestimentos)

Todos os dados passam pelo filtro de empresa; as contas ficam em
``loja.domain.formulas``. Cada relatório devolve uma lista de dicts (ou um
dict, no caso dos resumos); ``como_tabela`` converte para colunas e linhas
de exibição.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Sequence, Tuple

from loja.config import DB_PATH, DEFAULTS
from loja.domain import formulas
from loja.domain.errors import ErroValidacao, LojaError
from loja.domain.models import Ator
from loja.domain.policies import exigir_admin
from loja.infra.db import connect
from loja.infra.logger import log_system_event, system_logger
from loja.infra.repositories import (
    AuditoriaRepo,
    ClienteRepo,
    DespesaRepo,
    EncomendaRepo,
    ProdutoRepo,
    ReinvestimentoRepo,
    VendaRepo,
)
from loja.usecases.cadastros import FILTROS_ESTOQUE
from loja.usecases.encomendas import buscar_pedidos_produto


# ----------------------
# util
# ----------------------

def _inicio_periodo(dias: int, hoje: Optional[date] = None) -> str:
    if int(dias) <= 0:
        raise ErroValidacao("O período deve ser de pelo menos 1 dia.")
    return ((hoje or date.today()) - timedelta(days=int(dias))).isoformat()


def como_tabela(
    linhas: Sequence[Dict[str, Any]],
    colunas: Sequence[Tuple[str, str]],
    vazio: str = "Nenhum registro encontrado.",
) -> Tuple[List[str], List[List[Any]], Optional[str]]:
    """Converte linhas em (cabeçalhos, valores, mensagem) para exibição tabular."""
    cabecalhos = [rotulo for _, rotulo in colunas]
    valores = [[linha.get(chave, "") for chave, _ in colunas] for linha in linhas]
    return cabecalhos, valores, (None if valores else vazio)


# ----------------------
# 1) Dashboard
# ----------------------

def relatorio_dashboard(ator: Ator, filtro_estoque: str = "todos", db_path: str = DB_PATH) -> Dict[str, Any]:
    """Resumo da página inicial.

    - ``investimento_total``: custo × quantidade de todos os produtos,
      independente do filtro.
    - ``valor_estoque`` e ``total_produtos``: apenas produtos do filtro
      (``todos``, ``com-estoque``, ``sem-estoque``).
    """
    if filtro_estoque not in FILTROS_ESTOQUE:
        raise ErroValidacao(f"Filtro de estoque inválido: {filtro_estoque}.")
    log_system_event("relatorio_dashboard_start", {"filtro": filtro_estoque, "ator": ator.username})
    with connect(db_path) as c:
        produtos = ProdutoRepo(c).listar(ator)
        clientes = ClienteRepo(c).listar(ator)
        vendas = VendaRepo(c).listar(ator)
        recentes = VendaRepo(c).listar_detalhes(ator, limite=DEFAULTS.vendas_recentes)

    if filtro_estoque == "com-estoque":
        filtrados = [p for p in produtos if p.quantity > 0]
    elif filtro_estoque == "sem-estoque":
        filtrados = [p for p in produtos if p.quantity == 0]
    else:
        filtrados = produtos

    resumo = {
        "total_produtos": len(filtrados),
        "total_clientes": len(clientes),
        "total_vendas": len(vendas),
        "receita_total": round(formulas.somar(vendas, "total_price"), 2),
        "investimento_total": round(formulas.somar_produto(produtos, "cost_price", "quantity"), 2),
        "valor_estoque": round(formulas.somar_produto(filtrados, "sale_price", "quantity"), 2),
        "vendas_recentes": recentes,
    }
    system_logger.info(
        f"REPORT_DASHBOARD: {resumo['total_vendas']} vendas, receita={resumo['receita_total']:.2f}"
    )
    return resumo


# ----------------------
# 2) Vendas por período
# ----------------------

def _vendas_periodo(ator: Ator, dias: int, db_path: str, hoje: Optional[date]) -> List[Dict[str, Any]]:
    desde = _inicio_periodo(dias, hoje)
    with connect(db_path) as c:
        vendas = VendaRepo(c).listar_detalhes(ator, desde=desde)
    return [v.__dict__ for v in vendas]


def relatorio_vendas_por_dia(
    ator: Ator, dias: int = DEFAULTS.periodo_relatorio_dias,
    db_path: str = DB_PATH, hoje: Optional[date] = None,
) -> List[Dict[str, Any]]:
    """Vendas, receita e ticket médio por dia, em ordem cronológica."""
    vendas = _vendas_periodo(ator, dias, db_path, hoje)
    grupos = formulas.agrupar_somas(
        vendas, lambda v: str(v.get("sale_date") or "")[:10], ["total_price"], contar_como="total_vendas"
    )
    linhas = [
        {
            "dia": g["chave"],
            "total_vendas": g["total_vendas"],
            "receita": round(g["total_price"], 2),
            "ticket_medio": round(g["total_price"] / g["total_vendas"], 2),
        }
        for g in grupos
    ]
    return sorted(linhas, key=lambda linha: linha["dia"])


def relatorio_vendas_por_produto(
    ator: Ator, dias: int = DEFAULTS.periodo_relatorio_dias, top: Optional[int] = None,
    db_path: str = DB_PATH, hoje: Optional[date] = None,
) -> List[Dict[str, Any]]:
    """Quantidade e receita por produto, maior receita primeiro."""
    vendas = _vendas_periodo(ator, dias, db_path, hoje)
    grupos = formulas.agrupar_somas(vendas, "product_name", ["quantity", "total_price"], contar_como=None)
    linhas = [
        {"produto": g["chave"], "quantidade": int(g["quantity"]), "receita": round(g["total_price"], 2)}
        for g in grupos
    ]
    return formulas.top_n(linhas, "receita", top)


def relatorio_vendas_por_cliente(
    ator: Ator, dias: int = DEFAULTS.periodo_relatorio_dias, top: Optional[int] = None,
    db_path: str = DB_PATH, hoje: Optional[date] = None,
) -> List[Dict[str, Any]]:
    """Compras e total gasto por cliente, maior gasto primeiro."""
    vendas = _vendas_periodo(ator, dias, db_path, hoje)
    grupos = formulas.agrupar_somas(vendas, "customer_name", ["total_price"], contar_como="compras")
    linhas = [
        {"cliente": g["chave"], "compras": g["compras"], "total_gasto": round(g["total_price"], 2)}
        for g in grupos
    ]
    return formulas.top_n(linhas, "total_gasto", top)


# ----------------------
# 3) Custo das vendas
# ----------------------

def relatorio_custo_vendas(
    ator: Ator, desde: Optional[str] = None, ate: Optional[str] = None, db_path: str = DB_PATH,
) -> Dict[str, Any]:
    """Custo, lucro e margem por venda (custo atual do produto), com totais."""
    with connect(db_path) as c:
        vendas = VendaRepo(c).listar_detalhes(ator, desde=desde, ate=ate)
    linhas: List[Dict[str, Any]] = []
    for v in vendas:
        custo_total = float(v.cost_price or 0) * v.quantity
        total = float(v.total_price)
        lucro = total - custo_total
        linhas.append({
            "id": v.id,
            "data": v.sale_date,
            "produto": v.product_name,
            "cliente": v.customer_name,
            "vendedor": v.seller or "Não informado",
            "quantidade": v.quantity,
            "preco_unitario": v.unit_price,
            "custo_unitario": float(v.cost_price or 0),
            "total_venda": round(total, 2),
            "custo_total": round(custo_total, 2),
            "lucro": round(lucro, 2),
            "margem": round(formulas.margem(lucro, total), 2),
        })
    total_vendas = formulas.somar(linhas, "total_venda")
    total_lucro = formulas.somar(linhas, "lucro")
    return {
        "linhas": linhas,
        "total_vendas": round(total_vendas, 2),
        "total_custo": round(formulas.somar(linhas, "custo_total"), 2),
        "total_lucro": round(total_lucro, 2),
        "margem_media": round(formulas.margem(total_lucro, total_vendas), 2),
    }


# ----------------------
# 4) Saldo de caixa
# ----------------------

def relatorio_saldo_caixa(ator: Ator, data_corte: Optional[str] = None, db_path: str = DB_PATH) -> Dict[str, Any]:
    """Saldo = vendas recebidas - despesas (saída) + entradas de caixa, a partir do corte."""
    with connect(db_path) as c:
        vendas = VendaRepo(c).listar(ator)
        despesas = DespesaRepo(c).listar(ator)
    despesas_periodo = [
        d for d in despesas if not data_corte or str(d.expense_date)[:10] >= data_corte[:10]
    ]
    vendas_periodo = [
        v for v in vendas if not data_corte or str(v.sale_date or "")[:10] >= data_corte[:10]
    ]
    entradas = [d for d in despesas_periodo if formulas.eh_entrada(d)]
    saidas = [d for d in despesas_periodo if not formulas.eh_entrada(d)]
    return {
        "data_corte": data_corte,
        "recebido": round(sum(formulas.valor_recebido(v) for v in vendas_periodo), 2),
        "entradas": round(formulas.somar(entradas, "amount"), 2),
        "saidas": round(formulas.somar(saidas, "amount"), 2),
        "saldo": formulas.saldo_caixa(vendas, despesas, data_corte),
    }


# ----------------------
# 5) Auditoria
# ----------------------

def relatorio_auditoria(
    ator: Ator, dias: int = 7, limite: Optional[int] = None,
    db_path: str = DB_PATH, hoje: Optional[date] = None,
) -> List[Dict[str, Any]]:
    """Alterações dos últimos ``dias``, mais recentes primeiro (somente admin)."""
    exigir_admin(ator)
    desde = _inicio_periodo(dias, hoje)
    try:
        with connect(db_path) as c:
            registros = AuditoriaRepo(c).listar(desde=desde, limite=limite or DEFAULTS.limite_auditoria)
    except LojaError as e:
        log_system_event("relatorio_auditoria_error", {"error": str(e)}, level="error")
        raise
    return [r.__dict__ for r in registros]


# ----------------------
# 6) Encomendas
# ----------------------

def relatorio_encomendas(ator: Ator, db_path: str = DB_PATH) -> Dict[str, Any]:
    """Encomendas com totais e pedidos de produto com custo total."""
    with connect(db_path) as c:
        encomendas = EncomendaRepo(c).listar(ator)
    pedidos = buscar_pedidos_produto(ator, db_path=db_path)
    por_status = formulas.agrupar_somas(
        [e.__dict__ for e in encomendas], "status", ["total_amount"], contar_como="quantidade"
    )
    return {
        "encomendas": [
            {"cliente": e.customer_name, "status": e.status, "total": e.total_amount, "criada_em": e.created_at}
            for e in encomendas
        ],
        "por_status": por_status,
        "total_encomendas": round(formulas.somar(encomendas, "total_amount"), 2),
        "pedidos": pedidos,
        "custo_pedidos": round(formulas.somar(pedidos, "custo_total"), 2),
    }


# ----------------------
# 7) Investimento líquido
# ----------------------

def relatorio_investimento_liquido(ator: Ator, socios: Optional[int] = None, db_path: str = DB_PATH) -> Dict[str, Any]:
    """Soma do preço de custo dos produtos menos os reinvestimentos.

    O custo é somado por produto (sem multiplicar pela quantidade); o
    resultado é dividido em partes iguais entre ``socios``.
    """
    socios = DEFAULTS.socios if socios is None else int(socios)
    if socios <= 0:
        raise ErroValidacao("Informe pelo menos um sócio.")
    with connect(db_path) as c:
        produtos = ProdutoRepo(c).listar(ator)
        reinvestimentos = ReinvestimentoRepo(c).listar(ator)

    custo = round(formulas.somar(produtos, "cost_price"), 2)
    reinvestido = round(formulas.somar(reinvestimentos, "amount"), 2)
    liquido = round(custo - reinvestido, 2)
    system_logger.info(f"REPORT_INVESTIMENTO: custo={custo:.2f}, reinvestido={reinvestido:.2f}")
    return {
        "custo_produtos": custo,
        "total_reinvestimentos": reinvestido,
        "investimento_liquido": liquido,
        "socios": socios,
        "parte_por_socio": round(liquido / socios, 2),
        "reinvestimentos": [r.__dict__ for r in reinvestimentos],
    }
