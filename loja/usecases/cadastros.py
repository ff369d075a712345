# loja/usecases/cadastros.py
"""
UC: Cadastros por empresa (categorias, clientes, produtos, despesas,
vendedores e reinvestimentos).

Todas as leituras passam pelo filtro de empresa e todas as escritas recebem
o ``Ator`` explicitamente; a validação dos campos acontece antes de abrir a
transação.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Callable, Dict, List, Optional, TypeVar

from loja.config import DB_PATH, DEFAULTS
from loja.domain.errors import ErroValidacao, LojaError
from loja.domain.models import Ator, Categoria, Cliente, Despesa, Direcao, Produto, Reinvestimento, Vendedor
from loja.domain.policies import direcao_da_categoria
from loja.domain.validacao import exigir_inteiro, exigir_texto, exigir_valor, texto_opcional
from loja.infra.contexto import sessao_do_ator
from loja.infra.db import ConexaoLoja, connect
from loja.infra.logger import log_transaction
from loja.infra.repositories import (
    CategoriaRepo,
    ClienteRepo,
    DespesaRepo,
    ProdutoRepo,
    ReinvestimentoRepo,
    VendedorRepo,
)

T = TypeVar("T")

FILTROS_ESTOQUE = ("todos", "com-estoque", "sem-estoque")


def _executar(operacao: str, ator: Ator, db_path: str, fn: Callable[[ConexaoLoja], T], **data: Any) -> T:
    """Roda ``fn`` numa unidade de trabalho carimbada, registrando o resultado."""
    data = {**data, "ator": ator.username}
    try:
        with sessao_do_ator(db_path, ator) as c:
            resultado = fn(c)
    except LojaError as e:
        log_transaction(operacao, data, error=str(e))
        raise
    log_transaction(operacao, data, result=getattr(resultado, "id", resultado))
    return resultado


# -------------------------
# Categorias
# -------------------------

def listar_categorias(ator: Ator, db_path: str = DB_PATH) -> List[Categoria]:
    with connect(db_path) as c:
        return CategoriaRepo(c).listar(ator)


def criar_categoria(ator: Ator, nome: str, tenant_id: Optional[str] = None, db_path: str = DB_PATH) -> Categoria:
    nome = exigir_texto(nome, "nome")
    return _executar(
        "criar_categoria", ator, db_path,
        lambda c: CategoriaRepo(c).inserir(ator, {"name": nome}, tenant_escolhido=tenant_id),
        nome=nome,
    )


def renomear_categoria(ator: Ator, categoria_id: str, nome: str, db_path: str = DB_PATH) -> Categoria:
    nome = exigir_texto(nome, "nome")
    return _executar(
        "renomear_categoria", ator, db_path,
        lambda c: CategoriaRepo(c).atualizar(ator, categoria_id, {"name": nome}),
        id=categoria_id, nome=nome,
    )


def excluir_categoria(ator: Ator, categoria_id: str, db_path: str = DB_PATH) -> None:
    _executar(
        "excluir_categoria", ator, db_path,
        lambda c: CategoriaRepo(c).excluir(ator, categoria_id),
        id=categoria_id,
    )


# -------------------------
# Clientes
# -------------------------

def listar_clientes(ator: Ator, db_path: str = DB_PATH) -> List[Cliente]:
    with connect(db_path) as c:
        return ClienteRepo(c).listar(ator)


def _dados_cliente(nome: Any, whatsapp: Any, email: Any) -> Dict[str, Any]:
    email = texto_opcional(email)
    if email and "@" not in email:
        raise ErroValidacao("E-mail inválido.")
    return {"name": exigir_texto(nome, "nome"), "whatsapp": texto_opcional(whatsapp), "email": email}


def criar_cliente(
    ator: Ator,
    nome: str,
    whatsapp: Optional[str] = None,
    email: Optional[str] = None,
    tenant_id: Optional[str] = None,
    db_path: str = DB_PATH,
) -> Cliente:
    dados = _dados_cliente(nome, whatsapp, email)
    return _executar(
        "criar_cliente", ator, db_path,
        lambda c: ClienteRepo(c).inserir(ator, dados, tenant_escolhido=tenant_id),
        nome=dados["name"],
    )


def atualizar_cliente(
    ator: Ator,
    cliente_id: str,
    nome: str,
    whatsapp: Optional[str] = None,
    email: Optional[str] = None,
    db_path: str = DB_PATH,
) -> Cliente:
    dados = _dados_cliente(nome, whatsapp, email)
    return _executar(
        "atualizar_cliente", ator, db_path,
        lambda c: ClienteRepo(c).atualizar(ator, cliente_id, dados),
        id=cliente_id,
    )


def excluir_cliente(ator: Ator, cliente_id: str, db_path: str = DB_PATH) -> None:
    _executar(
        "excluir_cliente", ator, db_path,
        lambda c: ClienteRepo(c).excluir(ator, cliente_id),
        id=cliente_id,
    )


# -------------------------
# Produtos
# -------------------------

def listar_produtos(
    ator: Ator,
    filtro_estoque: str = "todos",
    incluir_encomenda: bool = True,
    db_path: str = DB_PATH,
) -> List[Produto]:
    """Produtos visíveis ao ator.

    ``filtro_estoque``: ``todos``, ``com-estoque`` (quantidade > 0) ou
    ``sem-estoque`` (quantidade = 0).
    """
    if filtro_estoque not in FILTROS_ESTOQUE:
        raise ErroValidacao(f"Filtro de estoque inválido: {filtro_estoque}.")
    with connect(db_path) as c:
        produtos = ProdutoRepo(c).listar(ator)
    if not incluir_encomenda:
        produtos = [p for p in produtos if not p.is_order_product]
    if filtro_estoque == "com-estoque":
        return [p for p in produtos if p.quantity > 0]
    if filtro_estoque == "sem-estoque":
        return [p for p in produtos if p.quantity <= 0]
    return produtos


def _dados_produto(campos: Dict[str, Any]) -> Dict[str, Any]:
    dados: Dict[str, Any] = {}
    if "name" in campos:
        dados["name"] = exigir_texto(campos["name"], "nome")
    for campo, rotulo in (("cost_price", "preço de custo"), ("sale_price", "preço de venda")):
        if campos.get(campo) not in (None, ""):
            dados[campo] = exigir_valor(campos[campo], rotulo)
    if campos.get("quantity") not in (None, ""):
        dados["quantity"] = exigir_inteiro(campos["quantity"], "quantidade", minimo=0)
    if "is_order_product" in campos:
        dados["is_order_product"] = 1 if campos["is_order_product"] else 0
    if "category_id" in campos:
        dados["category_id"] = campos["category_id"] or None
    return dados


def criar_produto(
    ator: Ator,
    name: str,
    cost_price: Any = 0,
    sale_price: Any = 0,
    quantity: Any = 0,
    category_id: Optional[str] = None,
    is_order_product: bool = False,
    tenant_id: Optional[str] = None,
    db_path: str = DB_PATH,
) -> Produto:
    dados = _dados_produto({
        "name": name, "cost_price": cost_price, "sale_price": sale_price, "quantity": quantity,
        "category_id": category_id, "is_order_product": is_order_product,
    })

    def _criar(c: ConexaoLoja) -> Produto:
        if dados.get("category_id"):
            CategoriaRepo(c).obter(ator, dados["category_id"])
        return ProdutoRepo(c).inserir(ator, dados, tenant_escolhido=tenant_id)

    return _executar("criar_produto", ator, db_path, _criar, nome=dados["name"])


def atualizar_produto(ator: Ator, produto_id: str, db_path: str = DB_PATH, **campos: Any) -> Produto:
    """Atualiza os campos informados (nome, preços, quantidade, categoria, encomenda)."""
    dados = _dados_produto(campos)

    def _atualizar(c: ConexaoLoja) -> Produto:
        if dados.get("category_id"):
            CategoriaRepo(c).obter(ator, dados["category_id"])
        return ProdutoRepo(c).atualizar(ator, produto_id, dados)

    return _executar("atualizar_produto", ator, db_path, _atualizar, id=produto_id, campos=sorted(dados))


def excluir_produto(ator: Ator, produto_id: str, db_path: str = DB_PATH) -> None:
    _executar(
        "excluir_produto", ator, db_path,
        lambda c: ProdutoRepo(c).excluir(ator, produto_id),
        id=produto_id,
    )


# -------------------------
# Despesas
# -------------------------

def listar_despesas(
    ator: Ator,
    desde: Optional[str] = None,
    ate: Optional[str] = None,
    db_path: str = DB_PATH,
) -> List[Despesa]:
    with connect(db_path) as c:
        despesas = DespesaRepo(c).listar(ator)
    return [
        d for d in despesas
        if (not desde or d.expense_date >= desde) and (not ate or d.expense_date <= ate)
    ]


def _dados_despesa(
    description: Any, amount: Any, category: Any, expense_date: Any,
    observacao: Any, direction: Optional[str],
) -> Dict[str, Any]:
    categoria = exigir_texto(category, "categoria")
    if categoria not in DEFAULTS.categorias_despesa:
        raise ErroValidacao(f"Categoria de despesa desconhecida: {categoria}.")
    direcao = direcao_da_categoria(categoria)
    if direction:
        try:
            informada = Direcao(direction)
        except ValueError:
            raise ErroValidacao(f"Direção inválida: {direction}.") from None
        if informada is not direcao:
            raise ErroValidacao(
                f"A categoria {categoria} é sempre {direcao.value}; direção informada: {informada.value}."
            )
    return {
        "description": exigir_texto(description, "descrição"),
        "amount": exigir_valor(amount, "valor"),
        "category": categoria,
        "expense_date": texto_opcional(expense_date),
        "direction": direcao.value,
        "observacao": texto_opcional(observacao),
    }


def criar_despesa(
    ator: Ator,
    description: str,
    amount: Any,
    category: str,
    expense_date: Optional[str] = None,
    observacao: Optional[str] = None,
    direction: Optional[str] = None,
    tenant_id: Optional[str] = None,
    db_path: str = DB_PATH,
) -> Despesa:
    """Registra uma despesa; ``direction`` vem da categoria e, se informada, precisa conferir."""
    dados = _dados_despesa(description, amount, category, expense_date, observacao, direction)
    dados["expense_date"] = dados["expense_date"] or date.today().isoformat()
    return _executar(
        "criar_despesa", ator, db_path,
        lambda c: DespesaRepo(c).inserir(ator, dados, tenant_escolhido=tenant_id),
        categoria=dados["category"], valor=dados["amount"],
    )


def atualizar_despesa(
    ator: Ator,
    despesa_id: str,
    description: str,
    amount: Any,
    category: str,
    expense_date: Optional[str] = None,
    observacao: Optional[str] = None,
    direction: Optional[str] = None,
    db_path: str = DB_PATH,
) -> Despesa:
    dados = _dados_despesa(description, amount, category, expense_date, observacao, direction)
    if not dados["expense_date"]:
        del dados["expense_date"]
    return _executar(
        "atualizar_despesa", ator, db_path,
        lambda c: DespesaRepo(c).atualizar(ator, despesa_id, dados),
        id=despesa_id,
    )


def excluir_despesa(ator: Ator, despesa_id: str, db_path: str = DB_PATH) -> None:
    _executar(
        "excluir_despesa", ator, db_path,
        lambda c: DespesaRepo(c).excluir(ator, despesa_id),
        id=despesa_id,
    )


# -------------------------
# Vendedores
# -------------------------

def listar_vendedores(ator: Ator, db_path: str = DB_PATH) -> List[Vendedor]:
    with connect(db_path) as c:
        return VendedorRepo(c).listar(ator)


def criar_vendedor(ator: Ator, nome: str, tenant_id: Optional[str] = None, db_path: str = DB_PATH) -> Vendedor:
    nome = exigir_texto(nome, "nome")
    return _executar(
        "criar_vendedor", ator, db_path,
        lambda c: VendedorRepo(c).inserir(ator, {"name": nome}, tenant_escolhido=tenant_id),
        nome=nome,
    )


def renomear_vendedor(ator: Ator, vendedor_id: str, nome: str, db_path: str = DB_PATH) -> Vendedor:
    """Renomeia o cadastro; vendas antigas guardam o nome da época."""
    nome = exigir_texto(nome, "nome")
    return _executar(
        "renomear_vendedor", ator, db_path,
        lambda c: VendedorRepo(c).atualizar(ator, vendedor_id, {"name": nome}),
        id=vendedor_id, nome=nome,
    )


def excluir_vendedor(ator: Ator, vendedor_id: str, db_path: str = DB_PATH) -> None:
    _executar(
        "excluir_vendedor", ator, db_path,
        lambda c: VendedorRepo(c).excluir(ator, vendedor_id),
        id=vendedor_id,
    )


# -------------------------
# Reinvestimentos
# -------------------------

def listar_reinvestimentos(ator: Ator, db_path: str = DB_PATH) -> List[Reinvestimento]:
    with connect(db_path) as c:
        return ReinvestimentoRepo(c).listar(ator)


def criar_reinvestimento(
    ator: Ator,
    amount: Any,
    data: str,
    description: Optional[str] = None,
    tenant_id: Optional[str] = None,
    db_path: str = DB_PATH,
) -> Reinvestimento:
    """Registra um reinvestimento; valor e data são obrigatórios."""
    dados = {
        "amount": exigir_valor(amount, "valor"),
        "date": exigir_texto(data, "data"),
        "description": texto_opcional(description),
    }
    return _executar(
        "criar_reinvestimento", ator, db_path,
        lambda c: ReinvestimentoRepo(c).inserir(ator, dados, tenant_escolhido=tenant_id),
        valor=dados["amount"],
    )


def excluir_reinvestimento(ator: Ator, reinvestimento_id: str, db_path: str = DB_PATH) -> None:
    _executar(
        "excluir_reinvestimento", ator, db_path,
        lambda c: ReinvestimentoRepo(c).excluir(ator, reinvestimento_id),
        id=reinvestimento_id,
    )
