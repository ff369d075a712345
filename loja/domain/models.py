# loja/domain/models.py
"""
Modelos (dataclasses) do domínio.

Observação importante:
- O executor de consultas trabalha com dicionários (uma linha = um dict);
  os repositórios convertem essas linhas nas dataclasses abaixo com
  ``de_linha``, ignorando colunas extras.
- Os nomes das colunas seguem o schema do banco (inglês); os nomes das
  classes seguem o domínio.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Type, TypeVar

T = TypeVar("T")


class StatusPedido(str, Enum):
    PENDENTE = "Pendente"
    EM_PRODUCAO = "Em Produção"
    CONCLUIDA = "Concluída"
    CANCELADA = "Cancelada"


class Direcao(str, Enum):
    """Sentido do dinheiro de uma despesa no saldo de caixa."""
    ENTRADA = "entrada"
    SAIDA = "saida"


class Operacao(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


def de_linha(cls: Type[T], row: Dict[str, Any]) -> T:
    """Cria a dataclass ``cls`` a partir de uma linha, ignorando colunas extras."""
    nomes = {f.name for f in fields(cls)}
    return cls(**{k: v for k, v in row.items() if k in nomes})


# -------------------------
# Identidade e consultas
# -------------------------

@dataclass(frozen=True)
class Ator:
    """Quem está agindo: passado explicitamente a toda operação de escrita."""
    username: str
    tenant_id: Optional[str] = None
    is_admin: bool = False


@dataclass(frozen=True)
class Consulta:
    """Consulta de leitura sobre uma tabela (ou view).

    ``filtros`` são igualdades; ``minimos``/``maximos`` viram ``>=``/``<=``.
    Os filtros são tuplas de pares para manter a consulta imutável.
    """
    tabela: str
    colunas: Tuple[str, ...] = ("*",)
    filtros: Tuple[Tuple[str, Any], ...] = ()
    minimos: Tuple[Tuple[str, Any], ...] = ()
    maximos: Tuple[Tuple[str, Any], ...] = ()
    ordem: Tuple[Tuple[str, bool], ...] = ()   # (coluna, descendente)
    limite: Optional[int] = None

    def com_filtro(self, coluna: str, valor: Any) -> "Consulta":
        return Consulta(
            tabela=self.tabela,
            colunas=self.colunas,
            filtros=self.filtros + ((coluna, valor),),
            minimos=self.minimos,
            maximos=self.maximos,
            ordem=self.ordem,
            limite=self.limite,
        )


# -------------------------
# Entidades
# -------------------------

@dataclass
class Empresa:
    """Tenant: organização isolada dona dos cadastros."""
    id: str
    name: str
    created_at: Optional[str] = None
    user_count: int = 0


@dataclass
class Usuario:
    id: str
    username: str
    tenant_id: Optional[str] = None
    is_admin: bool = False
    created_at: Optional[str] = None

    def como_ator(self) -> Ator:
        return Ator(username=self.username, tenant_id=self.tenant_id, is_admin=bool(self.is_admin))


@dataclass
class Categoria:
    id: str
    name: str
    tenant_id: Optional[str] = None


@dataclass
class Cliente:
    id: str
    name: str
    whatsapp: Optional[str] = None
    email: Optional[str] = None
    tenant_id: Optional[str] = None


@dataclass
class Produto:
    id: str
    name: str
    cost_price: float = 0.0
    sale_price: float = 0.0
    quantity: int = 0
    category_id: Optional[str] = None
    tenant_id: Optional[str] = None
    is_order_product: bool = False
    version: int = 0


@dataclass
class Venda:
    id: str
    product_id: Optional[str]
    quantity: int
    unit_price: float
    total_price: float
    customer_id: Optional[str] = None
    sale_date: Optional[str] = None
    tenant_id: Optional[str] = None
    payment_received: bool = True
    partial_payment_amount: Optional[float] = None
    seller: Optional[str] = None
    created_at: Optional[str] = None


@dataclass
class VendaDetalhada:
    """Linha da view ``vw_vendas_detalhe`` (venda + produto + cliente)."""
    id: str
    quantity: int
    unit_price: float
    total_price: float
    sale_date: Optional[str] = None
    product_id: Optional[str] = None
    product_name: Optional[str] = None
    cost_price: Optional[float] = None
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    payment_received: bool = True
    partial_payment_amount: Optional[float] = None
    seller: Optional[str] = None
    tenant_id: Optional[str] = None
    created_at: Optional[str] = None


@dataclass
class ItemEncomenda:
    product_name: str
    cost_price: float
    quantity: int
    subtotal: float = 0.0
    id: Optional[str] = None
    order_id: Optional[str] = None


@dataclass
class Encomenda:
    id: str
    customer_name: str
    total_amount: float = 0.0
    status: str = StatusPedido.PENDENTE.value
    notes: Optional[str] = None
    tenant_id: Optional[str] = None
    created_at: Optional[str] = None
    itens: list = field(default_factory=list)


@dataclass
class PedidoProduto:
    """Pedido especial de um produto (ProductOrderRequest)."""
    id: str
    product_id: str
    customer_name: str
    requested_quantity: int
    status: str = StatusPedido.PENDENTE.value
    cost_price: Optional[float] = None
    sale_price: Optional[float] = None
    notes: Optional[str] = None
    tenant_id: Optional[str] = None
    created_at: Optional[str] = None


@dataclass
class Despesa:
    id: str
    description: str
    amount: float
    category: str
    expense_date: str
    direction: str = Direcao.SAIDA.value
    observacao: Optional[str] = None
    tenant_id: Optional[str] = None


@dataclass
class Vendedor:
    id: str
    name: str
    tenant_id: Optional[str] = None


@dataclass
class Reinvestimento:
    """Valor devolvido ao caixa da loja; abate o investimento em produtos."""
    id: str
    amount: float
    date: str
    description: Optional[str] = None
    tenant_id: Optional[str] = None
    created_at: Optional[str] = None


@dataclass
class RegistroAuditoria:
    """Linha imutável do ``audit_log`` (escrita apenas pelos triggers)."""
    id: str
    table_name: str
    operation: str
    record_id: str
    user_name: str
    old_values: Optional[str] = None
    new_values: Optional[str] = None
    created_at: Optional[str] = None
