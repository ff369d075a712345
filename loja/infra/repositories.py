# loja/infra/repositories.py
"""
Repositórios (DAO) para acesso e manipulação de dados no SQLite.

Todos recebem uma conexão aberta (a unidade de trabalho do caso de uso) e
falam com o banco apenas pelo executor genérico. Os repositórios de
cadastros por empresa aplicam a política de escopo em toda leitura e
escrita.

Classes:
- EmpresaRepo
- UsuarioRepo
- CategoriaRepo
- ClienteRepo
- ProdutoRepo
- VendaRepo
- EncomendaRepo
- PedidoProdutoRepo
- DespesaRepo
- AuditoriaRepo
"""

from __future__ import annotations

from typing import Any, Dict, Generic, List, Mapping, Optional, Type, TypeVar

from loja.domain.errors import ConflitoDeConcorrencia, EstoqueInsuficiente, RegistroNaoEncontrado
from loja.domain.models import (
    Ator,
    Categoria,
    Cliente,
    Consulta,
    Despesa,
    Empresa,
    Encomenda,
    ItemEncomenda,
    PedidoProduto,
    Produto,
    RegistroAuditoria,
    Reinvestimento,
    Usuario,
    Venda,
    VendaDetalhada,
    Vendedor,
    de_linha,
)
from loja.domain.policies import estoque_apos_edicao, exigir_tenant_para_insercao, filtrar_leitura
from loja.infra import executor
from loja.infra.db import ConexaoLoja

M = TypeVar("M")


# -------------------------
# Base com escopo por empresa
# -------------------------

class _RepoEscopado(Generic[M]):
    tabela: str = ""
    modelo: Type[M]
    ordem_padrao = (("created_at", True),)

    def __init__(self, conn: ConexaoLoja):
        self.conn = conn

    def _filtros_escrita(self, ator: Ator, id_: str) -> Dict[str, Any]:
        # leitura e escrita usam o mesmo escopo
        filtros = dict(filtrar_leitura(Consulta(self.tabela, filtros=(("id", id_),)), ator).filtros)
        return filtros

    def consulta(self, ator: Ator, **filtros: Any) -> Consulta:
        return filtrar_leitura(
            Consulta(self.tabela, filtros=tuple(filtros.items()), ordem=self.ordem_padrao), ator
        )

    def listar(self, ator: Ator, **filtros: Any) -> List[M]:
        return [de_linha(self.modelo, r) for r in executor.select(self.conn, self.consulta(ator, **filtros))]

    def obter(self, ator: Ator, id_: str) -> M:
        rows = executor.select(self.conn, self.consulta(ator, id=id_))
        if not rows:
            raise RegistroNaoEncontrado()
        return de_linha(self.modelo, rows[0])

    def inserir(self, ator: Ator, dados: Mapping[str, Any], tenant_escolhido: Optional[str] = None) -> M:
        row = dict(dados)
        row["tenant_id"] = exigir_tenant_para_insercao(ator, tenant_escolhido)
        return de_linha(self.modelo, executor.insert(self.conn, self.tabela, [row])[0])

    def atualizar(self, ator: Ator, id_: str, patch: Mapping[str, Any]) -> M:
        patch = {k: v for k, v in patch.items() if k not in ("id", "tenant_id")}
        if patch and executor.update(self.conn, self.tabela, patch, self._filtros_escrita(ator, id_)) == 0:
            raise RegistroNaoEncontrado()
        return self.obter(ator, id_)

    def excluir(self, ator: Ator, id_: str) -> None:
        if executor.delete(self.conn, self.tabela, self._filtros_escrita(ator, id_)) == 0:
            raise RegistroNaoEncontrado()


class CategoriaRepo(_RepoEscopado[Categoria]):
    tabela = "categories"
    modelo = Categoria
    ordem_padrao = (("name", False),)


class ClienteRepo(_RepoEscopado[Cliente]):
    tabela = "customers"
    modelo = Cliente
    ordem_padrao = (("name", False),)


class DespesaRepo(_RepoEscopado[Despesa]):
    tabela = "expenses"
    modelo = Despesa
    ordem_padrao = (("expense_date", True),)


class PedidoProdutoRepo(_RepoEscopado[PedidoProduto]):
    tabela = "product_order_requests"
    modelo = PedidoProduto


class VendedorRepo(_RepoEscopado[Vendedor]):
    tabela = "sellers"
    modelo = Vendedor
    ordem_padrao = (("name", False),)

    def nomes_da_empresa(self, tenant_id: Optional[str]) -> List[str]:
        """Nomes cadastrados para a empresa (sem escopo de ator; uso após checagem)."""
        rows = executor.select(
            self.conn, Consulta(self.tabela, colunas=("name",), filtros=(("tenant_id", tenant_id),))
        )
        return [r["name"] for r in rows]


class ReinvestimentoRepo(_RepoEscopado[Reinvestimento]):
    tabela = "reinvestments"
    modelo = Reinvestimento
    ordem_padrao = (("date", True),)


# -------------------------
# Produto e estoque
# -------------------------

class ProdutoRepo(_RepoEscopado[Produto]):
    tabela = "products"
    modelo = Produto
    ordem_padrao = (("name", False),)

    def recarregar(self, produto_id: str) -> Optional[Produto]:
        """Lê o produto direto do banco, sem escopo (uso interno após checagem)."""
        rows = executor.select(self.conn, Consulta(self.tabela, filtros=(("id", produto_id),)))
        return de_linha(Produto, rows[0]) if rows else None

    def baixar_estoque(self, produto: Produto, quantidade: int) -> Produto:
        """Decrementa o estoque apenas se houver saldo (UPDATE condicional)."""
        afetadas = executor.update_expr(
            self.conn,
            self.tabela,
            "quantity = quantity - ?, version = version + 1",
            [int(quantidade)],
            {"id": produto.id},
            "quantity >= ?",
            [int(quantidade)],
        )
        return self._confirmar(afetadas, produto, quantidade)

    def ajustar_estoque_edicao(self, produto: Produto, anterior: int, nova: int) -> Produto:
        """Aplica ``quantity + anterior - nova`` num único comando condicional."""
        delta = int(anterior) - int(nova)
        afetadas = executor.update_expr(
            self.conn,
            self.tabela,
            "quantity = quantity + ?, version = version + 1",
            [delta],
            {"id": produto.id},
            "quantity + ? >= 0",
            [delta],
        )
        return self._confirmar(afetadas, produto, int(nova), devolvido=int(anterior))

    def devolver_estoque(self, produto_id: str, quantidade: int) -> int:
        """Devolve ``quantidade`` ao estoque; retorna 0 se o produto não existe mais."""
        return executor.update_expr(
            self.conn,
            self.tabela,
            "quantity = quantity + ?, version = version + 1",
            [int(quantidade)],
            {"id": produto_id},
        )

    def atualizar_preco_venda(self, produto_id: str, preco: float) -> None:
        executor.update(self.conn, self.tabela, {"sale_price": float(preco)}, {"id": produto_id})

    def _confirmar(self, afetadas: int, produto: Produto, solicitado: int, devolvido: int = 0) -> Produto:
        atual = self.recarregar(produto.id)
        if afetadas == 1 and atual is not None:
            return atual
        if atual is None:
            raise RegistroNaoEncontrado("Produto não encontrado.")
        if estoque_apos_edicao(atual.quantity, devolvido, solicitado) < 0:
            raise EstoqueInsuficiente(atual.name, atual.quantity + devolvido, solicitado)
        raise ConflitoDeConcorrencia()


# -------------------------
# Vendas
# -------------------------

class VendaRepo(_RepoEscopado[Venda]):
    tabela = "sales"
    modelo = Venda

    def listar_detalhes(self, ator: Ator, desde: Optional[str] = None, ate: Optional[str] = None,
                        limite: Optional[int] = None) -> List[VendaDetalhada]:
        consulta = Consulta(
            "vw_vendas_detalhe",
            minimos=(("sale_date", desde),) if desde else (),
            maximos=(("sale_date", ate),) if ate else (),
            ordem=(("created_at", True),),
            limite=limite,
        )
        rows = executor.select(self.conn, filtrar_leitura(consulta, ator))
        return [de_linha(VendaDetalhada, r) for r in rows]


# -------------------------
# Encomendas
# -------------------------

class EncomendaRepo(_RepoEscopado[Encomenda]):
    tabela = "orders"
    modelo = Encomenda

    def itens(self, order_id: str) -> List[ItemEncomenda]:
        rows = executor.select(
            self.conn,
            Consulta("order_items", filtros=(("order_id", order_id),), ordem=(("created_at", False),)),
        )
        return [de_linha(ItemEncomenda, r) for r in rows]

    def substituir_itens(self, order_id: str, itens: List[ItemEncomenda]) -> List[ItemEncomenda]:
        """Remove todos os itens da encomenda e grava o novo conjunto."""
        executor.delete(self.conn, "order_items", {"order_id": order_id})
        rows = [
            {
                "order_id": order_id,
                "product_name": i.product_name,
                "cost_price": i.cost_price,
                "quantity": i.quantity,
                "subtotal": i.subtotal,
            }
            for i in itens
        ]
        return [de_linha(ItemEncomenda, r) for r in executor.insert(self.conn, "order_items", rows)]


# -------------------------
# Administração (sem escopo por empresa)
# -------------------------

class EmpresaRepo:
    def __init__(self, conn: ConexaoLoja):
        self.conn = conn

    def listar(self) -> List[Empresa]:
        empresas = executor.select(self.conn, Consulta("tenants", ordem=(("name", False),)))
        usuarios = executor.select(self.conn, Consulta("authorized_users", colunas=("tenant_id",)))
        contagem: Dict[str, int] = {}
        for u in usuarios:
            if u["tenant_id"]:
                contagem[u["tenant_id"]] = contagem.get(u["tenant_id"], 0) + 1
        return [de_linha(Empresa, {**e, "user_count": contagem.get(e["id"], 0)}) for e in empresas]

    def obter(self, tenant_id: str) -> Empresa:
        rows = executor.select(self.conn, Consulta("tenants", filtros=(("id", tenant_id),)))
        if not rows:
            raise RegistroNaoEncontrado("Empresa não encontrada.")
        return de_linha(Empresa, {**rows[0], "user_count": self.contar_usuarios(tenant_id)})

    def contar_usuarios(self, tenant_id: str) -> int:
        return executor.count(self.conn, Consulta("authorized_users", filtros=(("tenant_id", tenant_id),)))

    def inserir(self, nome: str) -> Empresa:
        return de_linha(Empresa, executor.insert(self.conn, "tenants", [{"name": nome}])[0])

    def renomear(self, tenant_id: str, nome: str) -> Empresa:
        if executor.update(self.conn, "tenants", {"name": nome}, {"id": tenant_id}) == 0:
            raise RegistroNaoEncontrado("Empresa não encontrada.")
        return self.obter(tenant_id)

    def excluir(self, tenant_id: str) -> None:
        if executor.delete(self.conn, "tenants", {"id": tenant_id}) == 0:
            raise RegistroNaoEncontrado("Empresa não encontrada.")


class UsuarioRepo:
    _colunas = ("id", "username", "tenant_id", "is_admin", "created_at")

    def __init__(self, conn: ConexaoLoja):
        self.conn = conn

    def listar(self) -> List[Usuario]:
        rows = executor.select(self.conn, Consulta("authorized_users", colunas=self._colunas,
                                                   ordem=(("username", False),)))
        return [de_linha(Usuario, r) for r in rows]

    def por_username(self, username: str) -> Optional[Usuario]:
        rows = executor.select(self.conn, Consulta("authorized_users", colunas=self._colunas,
                                                   filtros=(("username", username),)))
        return de_linha(Usuario, rows[0]) if rows else None

    def obter(self, user_id: str) -> Usuario:
        rows = executor.select(self.conn, Consulta("authorized_users", colunas=self._colunas,
                                                   filtros=(("id", user_id),)))
        if not rows:
            raise RegistroNaoEncontrado("Usuário não encontrado.")
        return de_linha(Usuario, rows[0])

    def inserir(self, dados: Mapping[str, Any]) -> Usuario:
        # password recebe a senha em texto; o trigger grava o bcrypt em password_hash
        row = executor.insert(self.conn, "authorized_users", [dict(dados)])[0]
        return de_linha(Usuario, row)

    def atualizar(self, user_id: str, patch: Mapping[str, Any]) -> Usuario:
        if executor.update(self.conn, "authorized_users", dict(patch), {"id": user_id}) == 0:
            raise RegistroNaoEncontrado("Usuário não encontrado.")
        return self.obter(user_id)

    def excluir(self, user_id: str) -> None:
        if executor.delete(self.conn, "authorized_users", {"id": user_id}) == 0:
            raise RegistroNaoEncontrado("Usuário não encontrado.")


class AuditoriaRepo:
    def __init__(self, conn: ConexaoLoja):
        self.conn = conn

    def listar(self, desde: Optional[str] = None, limite: int = 500) -> List[RegistroAuditoria]:
        consulta = Consulta(
            "audit_log",
            minimos=(("created_at", desde),) if desde else (),
            ordem=(("created_at", True),),
            limite=limite,
        )
        return [de_linha(RegistroAuditoria, r) for r in executor.select(self.conn, consulta)]
