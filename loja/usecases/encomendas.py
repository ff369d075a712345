# loja/usecases/encomendas.py
"""
UC: Encomendas (pedidos com itens livres) e pedidos especiais de produto.

Encomendas:
- salvar_encomenda(): cria ou edita; na edição o conjunto de itens é
  substituído por inteiro (apaga tudo e regrava) na mesma transação.
- total_amount = Σ quantidade × custo dos itens.

Pedidos de produto:
- status em {Pendente, Em Produção, Concluída, Cancelada}.
- preços próprios do pedido são opcionais e prevalecem sobre os do produto.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from loja.config import DB_PATH
from loja.domain.errors import ErroValidacao, LojaError
from loja.domain.models import Ator, Encomenda, ItemEncomenda, PedidoProduto, StatusPedido
from loja.domain.validacao import exigir_inteiro, exigir_texto, exigir_valor, texto_opcional
from loja.infra.contexto import sessao_do_ator
from loja.infra.db import connect
from loja.infra.logger import log_transaction
from loja.infra.repositories import EncomendaRepo, PedidoProdutoRepo, ProdutoRepo


def _status(valor: Optional[str]) -> str:
    if not valor:
        return StatusPedido.PENDENTE.value
    try:
        return StatusPedido(valor).value
    except ValueError:
        validos = ", ".join(s.value for s in StatusPedido)
        raise ErroValidacao(f"Status inválido: {valor}. Use um de: {validos}.") from None


def _itens(itens: Sequence[Dict[str, Any]]) -> List[ItemEncomenda]:
    validos: List[ItemEncomenda] = []
    for item in itens:
        # linhas em branco do formulário são ignoradas
        if not str(item.get("product_name") or "").strip():
            continue
        qtd = exigir_inteiro(item.get("quantity"), "quantidade", minimo=1)
        custo = exigir_valor(item.get("cost_price") or 0, "preço de custo")
        validos.append(ItemEncomenda(
            product_name=str(item["product_name"]).strip(),
            cost_price=custo,
            quantity=qtd,
            subtotal=round(qtd * custo, 2),
        ))
    if not validos:
        raise ErroValidacao("Adicione pelo menos um item à encomenda.")
    return validos


def total_encomenda(itens: Sequence[ItemEncomenda]) -> float:
    return round(sum(i.quantity * i.cost_price for i in itens), 2)


def salvar_encomenda(
    ator: Ator,
    customer_name: str,
    itens: Sequence[Dict[str, Any]],
    notes: Optional[str] = None,
    status: Optional[str] = None,
    encomenda_id: Optional[str] = None,
    tenant_id: Optional[str] = None,
    db_path: str = DB_PATH,
) -> Encomenda:
    """Cria (sem ``encomenda_id``) ou edita uma encomenda com seus itens."""
    data = {"id": encomenda_id, "customer_name": customer_name, "itens": len(itens), "ator": ator.username}
    try:
        cliente = exigir_texto(customer_name, "cliente")
        novos = _itens(itens)
        dados = {
            "customer_name": cliente,
            "notes": texto_opcional(notes),
            "status": _status(status),
            "total_amount": total_encomenda(novos),
        }
        with sessao_do_ator(db_path, ator) as c:
            repo = EncomendaRepo(c)
            if encomenda_id:
                encomenda = repo.atualizar(ator, encomenda_id, dados)
            else:
                encomenda = repo.inserir(ator, dados, tenant_escolhido=tenant_id)
            encomenda.itens = repo.substituir_itens(encomenda.id, novos)
    except LojaError as e:
        log_transaction("salvar_encomenda", data, error=str(e))
        raise
    log_transaction("salvar_encomenda", data, result={"id": encomenda.id, "total": encomenda.total_amount})
    return encomenda


def alterar_status_encomenda(ator: Ator, encomenda_id: str, status: str, db_path: str = DB_PATH) -> Encomenda:
    data = {"id": encomenda_id, "status": status, "ator": ator.username}
    try:
        novo = _status(status)
        with sessao_do_ator(db_path, ator) as c:
            encomenda = EncomendaRepo(c).atualizar(ator, encomenda_id, {"status": novo})
    except LojaError as e:
        log_transaction("alterar_status_encomenda", data, error=str(e))
        raise
    log_transaction("alterar_status_encomenda", data, result=novo)
    return encomenda


def excluir_encomenda(ator: Ator, encomenda_id: str, db_path: str = DB_PATH) -> None:
    """Exclui a encomenda; os itens saem em cascata."""
    data = {"id": encomenda_id, "ator": ator.username}
    try:
        with sessao_do_ator(db_path, ator) as c:
            EncomendaRepo(c).excluir(ator, encomenda_id)
    except LojaError as e:
        log_transaction("excluir_encomenda", data, error=str(e))
        raise
    log_transaction("excluir_encomenda", data, result="ok")


def listar_encomendas(ator: Ator, com_itens: bool = True, db_path: str = DB_PATH) -> List[Encomenda]:
    with connect(db_path) as c:
        repo = EncomendaRepo(c)
        encomendas = repo.listar(ator)
        if com_itens:
            for e in encomendas:
                e.itens = repo.itens(e.id)
    return encomendas


# -------------------------
# Pedidos de produto
# -------------------------

def _dados_pedido(
    customer_name: Any, requested_quantity: Any, status: Optional[str],
    cost_price: Any, sale_price: Any, notes: Any,
) -> Dict[str, Any]:
    return {
        "customer_name": exigir_texto(customer_name, "cliente"),
        "requested_quantity": exigir_inteiro(requested_quantity, "quantidade", minimo=1),
        "status": _status(status),
        "cost_price": exigir_valor(cost_price, "preço de custo") if cost_price not in (None, "") else None,
        "sale_price": exigir_valor(sale_price, "preço de venda") if sale_price not in (None, "") else None,
        "notes": texto_opcional(notes),
    }


def criar_pedido_produto(
    ator: Ator,
    product_id: str,
    customer_name: str,
    requested_quantity: Any,
    status: Optional[str] = None,
    cost_price: Any = None,
    sale_price: Any = None,
    notes: Optional[str] = None,
    db_path: str = DB_PATH,
) -> PedidoProduto:
    data = {"product_id": product_id, "customer_name": customer_name, "ator": ator.username}
    try:
        if not product_id:
            raise ErroValidacao("Selecione um produto.")
        dados = _dados_pedido(customer_name, requested_quantity, status, cost_price, sale_price, notes)
        with sessao_do_ator(db_path, ator) as c:
            produto = ProdutoRepo(c).obter(ator, product_id)
            dados["product_id"] = produto.id
            pedido = PedidoProdutoRepo(c).inserir(
                ator, dados, tenant_escolhido=produto.tenant_id if ator.is_admin else None
            )
    except LojaError as e:
        log_transaction("criar_pedido_produto", data, error=str(e))
        raise
    log_transaction("criar_pedido_produto", data, result=pedido.id)
    return pedido


def atualizar_pedido_produto(
    ator: Ator,
    pedido_id: str,
    customer_name: str,
    requested_quantity: Any,
    status: Optional[str] = None,
    cost_price: Any = None,
    sale_price: Any = None,
    notes: Optional[str] = None,
    db_path: str = DB_PATH,
) -> PedidoProduto:
    data = {"id": pedido_id, "status": status, "ator": ator.username}
    try:
        dados = _dados_pedido(customer_name, requested_quantity, status, cost_price, sale_price, notes)
        with sessao_do_ator(db_path, ator) as c:
            pedido = PedidoProdutoRepo(c).atualizar(ator, pedido_id, dados)
    except LojaError as e:
        log_transaction("atualizar_pedido_produto", data, error=str(e))
        raise
    log_transaction("atualizar_pedido_produto", data, result=pedido.id)
    return pedido


def excluir_pedido_produto(ator: Ator, pedido_id: str, db_path: str = DB_PATH) -> None:
    data = {"id": pedido_id, "ator": ator.username}
    try:
        with sessao_do_ator(db_path, ator) as c:
            PedidoProdutoRepo(c).excluir(ator, pedido_id)
    except LojaError as e:
        log_transaction("excluir_pedido_produto", data, error=str(e))
        raise
    log_transaction("excluir_pedido_produto", data, result="ok")


def buscar_pedidos_produto(
    ator: Ator,
    termo: Optional[str] = None,
    status: Optional[str] = None,
    db_path: str = DB_PATH,
) -> List[Dict[str, Any]]:
    """Pedidos com o nome do produto, filtrados por texto (cliente ou produto) e status.

    Cada linha traz ``custo_efetivo``: preço de custo do pedido, ou o do
    produto quando o pedido não define um.
    """
    filtro_status = _status(status) if status else None
    with connect(db_path) as c:
        pedidos = PedidoProdutoRepo(c).listar(ator)
        produtos = {p.id: p for p in ProdutoRepo(c).listar(ator)}
    termo_n = (termo or "").strip().lower()
    linhas: List[Dict[str, Any]] = []
    for p in pedidos:
        produto = produtos.get(p.product_id)
        nome_produto = produto.name if produto else "Produto não encontrado"
        if filtro_status and p.status != filtro_status:
            continue
        if termo_n and termo_n not in p.customer_name.lower() and termo_n not in nome_produto.lower():
            continue
        custo = p.cost_price if p.cost_price is not None else (produto.cost_price if produto else 0.0)
        linhas.append({
            "id": p.id,
            "product_id": p.product_id,
            "product_name": nome_produto,
            "customer_name": p.customer_name,
            "requested_quantity": p.requested_quantity,
            "status": p.status,
            "custo_efetivo": float(custo or 0),
            "custo_total": round(float(custo or 0) * p.requested_quantity, 2),
            "sale_price": p.sale_price if p.sale_price is not None else (produto.sale_price if produto else None),
            "notes": p.notes,
            "created_at": p.created_at,
        })
    return linhas
