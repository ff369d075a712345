# loja/usecases/registrar_venda.py
"""
UC: Registrar VENDAS (criação, venda com vários produtos, edição e exclusão).

Cada operação é uma unidade de trabalho: abre a conexão com o ator
carimbado, relê o produto no momento da operação e grava venda + estoque na
mesma transação (rollback em qualquer falha).

Regras de estoque:
- criar: rejeita se a quantidade exceder o estoque; baixa condicional.
- editar: disponível = estoque + quantidade antiga; estoque final =
  estoque + antiga - nova, num único UPDATE.
- excluir: devolução do estoque é best-effort (produto excluído não impede
  a exclusão da venda).
- vender a um preço diferente do catálogo atualiza o ``sale_price``.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional, Sequence

from loja.config import DB_PATH
from loja.domain.errors import ErroValidacao, LojaError, RegistroNaoEncontrado
from loja.domain.models import Ator, Produto, Venda, VendaDetalhada
from loja.domain.policies import disponivel_para_edicao, preco_mudou, verificar_disponibilidade
from loja.domain.validacao import exigir_inteiro, exigir_valor, texto_opcional
from loja.infra.contexto import sessao_do_ator
from loja.infra.db import ConexaoLoja, connect
from loja.infra.logger import log_system_event, log_transaction, log_venda
from loja.infra.repositories import ClienteRepo, ProdutoRepo, VendaRepo, VendedorRepo


def _pagamento(payment_received: bool, partial_payment_amount: Any, total: float) -> Dict[str, Any]:
    if payment_received:
        return {"payment_received": 1, "partial_payment_amount": None}
    parcial = exigir_valor(partial_payment_amount, "valor parcial") if partial_payment_amount not in (None, "") else None
    if parcial is not None and parcial > total:
        raise ErroValidacao("O valor parcial não pode ser maior que o total da venda.")
    return {"payment_received": 0, "partial_payment_amount": parcial}


def _sincronizar_preco(produtos: ProdutoRepo, produto: Produto, preco: float) -> None:
    if preco_mudou(produto.sale_price, preco):
        produtos.atualizar_preco_venda(produto.id, preco)
        log_venda("price_sync", produto.id, None, anterior=produto.sale_price, novo=preco)


def _validar_cliente(c: ConexaoLoja, ator: Ator, customer_id: Optional[str]) -> Optional[str]:
    # o cliente precisa estar visível para o ator (mesma empresa)
    if not customer_id:
        return None
    return ClienteRepo(c).obter(ator, customer_id).id


def _validar_vendedor(c: ConexaoLoja, seller: Any, tenant_id: Optional[str]) -> Optional[str]:
    # empresa com vendedores cadastrados só aceita um deles; sem cadastro, texto livre
    nome = texto_opcional(seller)
    if not nome:
        return None
    cadastrados = VendedorRepo(c).nomes_da_empresa(tenant_id)
    if cadastrados and nome not in cadastrados:
        raise ErroValidacao(f"Vendedor não cadastrado: {nome}.")
    return nome


def _registrar(
    c: ConexaoLoja,
    ator: Ator,
    product_id: str,
    quantity: Any,
    unit_price: Any,
    customer_id: Optional[str],
    sale_date: Optional[str],
    payment_received: bool,
    partial_payment_amount: Any,
    seller: Optional[str],
) -> Venda:
    if not product_id:
        raise ErroValidacao("Selecione um produto.")
    qtd = exigir_inteiro(quantity, "quantidade", minimo=1)

    produtos = ProdutoRepo(c)
    produto = produtos.obter(ator, product_id)
    preco = produto.sale_price if unit_price in (None, "") else exigir_valor(unit_price, "preço unitário")

    verificar_disponibilidade(produto.name, produto.quantity, qtd)

    tenant_venda = produto.tenant_id if ator.is_admin else ator.tenant_id
    total = round(qtd * preco, 2)
    dados = {
        "product_id": produto.id,
        "customer_id": customer_id,
        "quantity": qtd,
        "unit_price": preco,
        "total_price": total,
        "sale_date": sale_date or date.today().isoformat(),
        "seller": _validar_vendedor(c, seller, tenant_venda),
        **_pagamento(payment_received, partial_payment_amount, total),
    }
    # admin vendendo produto de uma empresa grava a venda nessa empresa
    venda = VendaRepo(c).inserir(ator, dados, tenant_escolhido=tenant_venda if ator.is_admin else None)
    produtos.baixar_estoque(produto, qtd)
    _sincronizar_preco(produtos, produto, preco)
    log_venda("create", produto.id, qtd, venda_id=venda.id, total=total)
    return venda


def criar_venda(
    ator: Ator,
    product_id: str,
    quantity: Any,
    unit_price: Any = None,
    customer_id: Optional[str] = None,
    sale_date: Optional[str] = None,
    payment_received: bool = True,
    partial_payment_amount: Any = None,
    seller: Optional[str] = None,
    db_path: str = DB_PATH,
) -> Venda:
    """Registra uma venda e baixa o estoque do produto (createSale)."""
    data = {"product_id": product_id, "quantity": quantity, "unit_price": unit_price, "ator": ator.username}
    log_transaction("criar_venda", data)
    try:
        with sessao_do_ator(db_path, ator) as c:
            cliente = _validar_cliente(c, ator, customer_id)
            venda = _registrar(
                c, ator, product_id, quantity, unit_price, cliente, sale_date,
                payment_received, partial_payment_amount, seller,
            )
    except LojaError as e:
        log_transaction("criar_venda", data, error=str(e))
        raise
    log_transaction("criar_venda", data, result={"id": venda.id, "total": venda.total_price})
    return venda


def criar_venda_multipla(
    ator: Ator,
    itens: Sequence[Dict[str, Any]],
    customer_id: Optional[str] = None,
    sale_date: Optional[str] = None,
    payment_received: bool = True,
    seller: Optional[str] = None,
    db_path: str = DB_PATH,
) -> List[Venda]:
    """Uma venda por item, todas na mesma transação.

    ``itens``: ``[{"product_id": ..., "quantity": ..., "unit_price": ...}, ...]``.
    Se qualquer item não tiver estoque, nenhuma venda é gravada. Pagamento
    parcial não se aplica a vendas com vários produtos.
    """
    if not itens:
        raise ErroValidacao("Adicione pelo menos um produto.")
    data = {"itens": len(itens), "customer_id": customer_id, "ator": ator.username}
    log_transaction("criar_venda_multipla", data)
    try:
        with sessao_do_ator(db_path, ator) as c:
            cliente = _validar_cliente(c, ator, customer_id)
            vendas = [
                _registrar(
                    c, ator, item.get("product_id"), item.get("quantity"), item.get("unit_price"),
                    cliente, sale_date, payment_received, None, seller,
                )
                for item in itens
            ]
    except LojaError as e:
        log_transaction("criar_venda_multipla", data, error=str(e))
        raise
    log_transaction("criar_venda_multipla", data, result={"vendas": len(vendas)})
    return vendas


_NAO_ALTERAR: Any = object()


def atualizar_venda(
    ator: Ator,
    venda_id: str,
    quantity: Any = None,
    unit_price: Any = None,
    product_id: Optional[str] = None,
    customer_id: Any = _NAO_ALTERAR,
    sale_date: Optional[str] = None,
    payment_received: Optional[bool] = None,
    partial_payment_amount: Any = None,
    seller: Any = _NAO_ALTERAR,
    db_path: str = DB_PATH,
) -> Venda:
    """Edita uma venda ajustando o estoque (updateSale).

    Com o mesmo produto: disponível = estoque + quantidade antiga; o estoque
    vira ``estoque + antiga - nova`` num único comando. Com troca de produto:
    devolve a quantidade antiga ao produto anterior e baixa a nova do novo.
    """
    data = {"venda_id": venda_id, "quantity": quantity, "unit_price": unit_price, "ator": ator.username}
    log_transaction("atualizar_venda", data)
    try:
        with sessao_do_ator(db_path, ator) as c:
            produtos = ProdutoRepo(c)
            vendas = VendaRepo(c)
            venda = vendas.obter(ator, venda_id)

            nova_qtd = venda.quantity if quantity in (None, "") else exigir_inteiro(quantity, "quantidade", minimo=1)
            novo_preco = venda.unit_price if unit_price in (None, "") else exigir_valor(unit_price, "preço unitário")
            novo_produto_id = product_id or venda.product_id
            if not novo_produto_id:
                raise RegistroNaoEncontrado("Produto não encontrado.")

            produto = produtos.obter(ator, novo_produto_id)
            if novo_produto_id == venda.product_id:
                disponivel = disponivel_para_edicao(produto.quantity, venda.quantity)
                verificar_disponibilidade(produto.name, disponivel, nova_qtd)
                produtos.ajustar_estoque_edicao(produto, venda.quantity, nova_qtd)
            else:
                verificar_disponibilidade(produto.name, produto.quantity, nova_qtd)
                _devolver(produtos, venda)
                produtos.baixar_estoque(produto, nova_qtd)

            total = round(nova_qtd * novo_preco, 2)
            patch: Dict[str, Any] = {
                "product_id": produto.id,
                "quantity": nova_qtd,
                "unit_price": novo_preco,
                "total_price": total,
            }
            if sale_date:
                patch["sale_date"] = sale_date
            if customer_id is not _NAO_ALTERAR:
                patch["customer_id"] = _validar_cliente(c, ator, customer_id)
            if seller is not _NAO_ALTERAR:
                patch["seller"] = _validar_vendedor(c, seller, venda.tenant_id)
            recebido = bool(venda.payment_received) if payment_received is None else payment_received
            parcial = venda.partial_payment_amount if partial_payment_amount is None else partial_payment_amount
            patch.update(_pagamento(recebido, parcial, total))

            atualizada = vendas.atualizar(ator, venda.id, patch)
            _sincronizar_preco(produtos, produto, novo_preco)
            log_venda("update", produto.id, nova_qtd, venda_id=venda.id, anterior=venda.quantity)
    except LojaError as e:
        log_transaction("atualizar_venda", data, error=str(e))
        raise
    log_transaction("atualizar_venda", data, result={"id": atualizada.id, "total": atualizada.total_price})
    return atualizada


def _devolver(produtos: ProdutoRepo, venda: Venda) -> bool:
    """Devolve a quantidade da venda ao produto; False se o produto não existe mais."""
    if venda.product_id and produtos.devolver_estoque(venda.product_id, venda.quantity):
        log_venda("restore", venda.product_id, venda.quantity, venda_id=venda.id)
        return True
    log_system_event(
        "estoque_nao_devolvido",
        {"venda_id": venda.id, "product_id": venda.product_id, "quantidade": venda.quantity},
        level="warning",
    )
    return False


def excluir_venda(ator: Ator, venda_id: str, db_path: str = DB_PATH) -> bool:
    """Exclui a venda devolvendo o estoque (deleteSale).

    Retorna True se o estoque foi devolvido; False se o produto já havia sido
    excluído (a venda é excluída mesmo assim).
    """
    data = {"venda_id": venda_id, "ator": ator.username}
    log_transaction("excluir_venda", data)
    try:
        with sessao_do_ator(db_path, ator) as c:
            vendas = VendaRepo(c)
            venda = vendas.obter(ator, venda_id)
            devolvido = _devolver(ProdutoRepo(c), venda)
            vendas.excluir(ator, venda.id)
    except LojaError as e:
        log_transaction("excluir_venda", data, error=str(e))
        raise
    log_transaction("excluir_venda", data, result={"estoque_devolvido": devolvido})
    return devolvido


def listar_vendas(
    ator: Ator,
    desde: Optional[str] = None,
    ate: Optional[str] = None,
    limite: Optional[int] = None,
    db_path: str = DB_PATH,
) -> List[VendaDetalhada]:
    """Vendas com produto e cliente, mais recentes primeiro."""
    with connect(db_path) as c:
        return VendaRepo(c).listar_detalhes(ator, desde, ate, limite)
