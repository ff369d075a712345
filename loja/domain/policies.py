"""
Políticas de autorização por empresa e regras de estoque.

Este módulo contém as regras de negócio puras do sistema: quem enxerga
quais linhas (escopo por empresa), qual ``tenant_id`` deve ser gravado em
uma inserção e como o estoque de um produto reage à criação, edição e
exclusão de vendas. Nada aqui acessa o banco; a camada de casos de uso
aplica estas funções antes de cada leitura ou escrita.
"""

from __future__ import annotations

from typing import Optional

from loja.config import CATEGORIA_ENTRADA_CAIXA
from loja.domain.errors import AcessoNegado, EmpresaNaoIdentificada, EstoqueInsuficiente
from loja.domain.models import Ator, Consulta, Direcao


# -------------------------
# Escopo por empresa
# -------------------------

def deve_filtrar(ator: Ator) -> bool:
    """Indica se as leituras do ator precisam do filtro por ``tenant_id``."""
    return not ator.is_admin and bool(ator.tenant_id)


def filtrar_leitura(consulta: Consulta, ator: Ator) -> Consulta:
    """Restringe a consulta às linhas visíveis para o ator.

    Regras:
        - Administrador: consulta inalterada (enxerga todas as empresas).
        - Usuário comum com empresa: adiciona ``tenant_id = <empresa>``.
        - Usuário comum sem empresa: ``EmpresaNaoIdentificada``; devolver a
          consulta sem filtro exporia dados de outras empresas.

    Args:
        consulta: Consulta original.
        ator: Identidade de quem lê.

    Returns:
        Uma nova ``Consulta`` (a original nunca é modificada).
    """
    if ator.is_admin:
        return consulta
    if not ator.tenant_id:
        raise EmpresaNaoIdentificada()
    return consulta.com_filtro("tenant_id", ator.tenant_id)


def tenant_id_para_insercao(ator: Ator) -> Optional[str]:
    """Retorna o ``tenant_id`` a gravar em novas linhas.

    Usuários comuns gravam a própria empresa; administradores gravam
    ``None`` (linha global) a menos que escolham uma empresa explicitamente
    em ``exigir_tenant_para_insercao``.
    """
    if ator.is_admin:
        return None
    return ator.tenant_id


def exigir_tenant_para_insercao(ator: Ator, tenant_escolhido: Optional[str] = None) -> Optional[str]:
    """Resolve o ``tenant_id`` de uma inserção ou rejeita antes da escrita.

    Um usuário comum sem empresa nunca pode inserir: a linha ficaria sem
    dono e visível apenas para administradores. Apenas administradores podem
    escolher uma empresa diferente da própria.
    """
    if ator.is_admin:
        return tenant_escolhido
    tenant_id = tenant_id_para_insercao(ator)
    if not tenant_id:
        raise EmpresaNaoIdentificada()
    if tenant_escolhido and tenant_escolhido != tenant_id:
        raise AcessoNegado("Usuários só podem cadastrar dados da própria empresa.")
    return tenant_id


def exigir_admin(ator: Ator) -> None:
    if not ator.is_admin:
        raise AcessoNegado()


# -------------------------
# Estoque
# -------------------------

def verificar_disponibilidade(produto: str, disponivel: int, solicitado: int) -> None:
    """Rejeita a venda se ``solicitado`` exceder ``disponivel``."""
    if solicitado > disponivel:
        raise EstoqueInsuficiente(produto, disponivel, solicitado)


def disponivel_para_edicao(estoque_atual: int, quantidade_anterior: int) -> int:
    """Estoque disponível ao editar uma venda: devolve a reserva antiga antes de checar."""
    return int(estoque_atual) + int(quantidade_anterior)


def estoque_apos_edicao(estoque_atual: int, quantidade_anterior: int, quantidade_nova: int) -> int:
    """Novo estoque após editar uma venda, calculado num único passo.

    ``estoque + anterior - nova``: nunca materializa um estado intermediário
    negativo, mesmo quando a nova quantidade é maior que o estoque atual.
    """
    return disponivel_para_edicao(estoque_atual, quantidade_anterior) - int(quantidade_nova)


def preco_mudou(preco_catalogo: Optional[float], preco_venda: float) -> bool:
    """Vender a um preço diferente torna esse preço o novo preço de catálogo."""
    if preco_catalogo is None:
        return True
    return round(float(preco_catalogo), 2) != round(float(preco_venda), 2)


# -------------------------
# Despesas
# -------------------------

def direcao_da_categoria(categoria: str) -> Direcao:
    """Único ponto onde a categoria "Entrada de Caixa" vira uma entrada."""
    if (categoria or "").strip() == CATEGORIA_ENTRADA_CAIXA:
        return Direcao.ENTRADA
    return Direcao.SAIDA
