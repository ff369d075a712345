# loja/infra/migrations.py
"""
Migrações de schema usando PRAGMA user_version.

V1: tabelas base (empresas, usuários, cadastros, vendas, encomendas, despesas, auditoria)
V2: coluna ``version`` em products (controle otimista de concorrência)
V3: triggers de auditoria, hash de senha e imutabilidade do audit_log
V4: vendedores e reinvestimentos (com auditoria)
"""

from __future__ import annotations

from typing import Dict, List, Optional, Tuple
from .db import connect


_NOW = "(strftime('%Y-%m-%d %H:%M:%f', 'now'))"
_ID = "(lower(hex(randomblob(16))))"

SCHEMA_V1: List[str] = [
    # Empresas (tenants)
    f"""
    CREATE TABLE IF NOT EXISTS tenants (
        id TEXT PRIMARY KEY DEFAULT {_ID},
        name TEXT NOT NULL UNIQUE,
        created_at TEXT DEFAULT {_NOW},
        updated_at TEXT DEFAULT {_NOW}
    );
    """,
    # Usuários autorizados; usuário comum precisa de empresa.
    # password é transitória: o trigger grava o bcrypt em password_hash e a limpa.
    f"""
    CREATE TABLE IF NOT EXISTS authorized_users (
        id TEXT PRIMARY KEY DEFAULT {_ID},
        username TEXT NOT NULL UNIQUE,
        password TEXT,
        password_hash TEXT,
        tenant_id TEXT REFERENCES tenants(id),
        is_admin INTEGER NOT NULL DEFAULT 0,
        created_at TEXT DEFAULT {_NOW},
        CHECK (is_admin = 1 OR tenant_id IS NOT NULL),
        CHECK (password_hash IS NOT NULL OR password IS NOT NULL)
    );
    """,
    f"""
    CREATE TABLE IF NOT EXISTS categories (
        id TEXT PRIMARY KEY DEFAULT {_ID},
        name TEXT NOT NULL,
        tenant_id TEXT REFERENCES tenants(id) ON DELETE CASCADE,
        created_at TEXT DEFAULT {_NOW},
        updated_at TEXT DEFAULT {_NOW}
    );
    """,
    f"""
    CREATE TABLE IF NOT EXISTS customers (
        id TEXT PRIMARY KEY DEFAULT {_ID},
        name TEXT NOT NULL,
        whatsapp TEXT,
        email TEXT,
        tenant_id TEXT REFERENCES tenants(id) ON DELETE CASCADE,
        created_at TEXT DEFAULT {_NOW},
        updated_at TEXT DEFAULT {_NOW}
    );
    """,
    # Produtos; quantity nunca negativa
    f"""
    CREATE TABLE IF NOT EXISTS products (
        id TEXT PRIMARY KEY DEFAULT {_ID},
        name TEXT NOT NULL,
        category_id TEXT REFERENCES categories(id),
        cost_price REAL NOT NULL DEFAULT 0 CHECK (cost_price >= 0),
        sale_price REAL NOT NULL DEFAULT 0 CHECK (sale_price >= 0),
        quantity INTEGER NOT NULL DEFAULT 0 CHECK (quantity >= 0),
        is_order_product INTEGER NOT NULL DEFAULT 0,
        image_url TEXT,
        tenant_id TEXT REFERENCES tenants(id) ON DELETE CASCADE,
        created_at TEXT DEFAULT {_NOW},
        updated_at TEXT DEFAULT {_NOW}
    );
    """,
    # Vendas; o produto pode ser excluído depois (product_id vira NULL)
    f"""
    CREATE TABLE IF NOT EXISTS sales (
        id TEXT PRIMARY KEY DEFAULT {_ID},
        customer_id TEXT REFERENCES customers(id),
        product_id TEXT REFERENCES products(id) ON DELETE SET NULL,
        quantity INTEGER NOT NULL CHECK (quantity > 0),
        unit_price REAL NOT NULL CHECK (unit_price >= 0),
        total_price REAL NOT NULL,
        sale_date TEXT,
        payment_received INTEGER NOT NULL DEFAULT 1,
        partial_payment_amount REAL,
        seller TEXT,
        tenant_id TEXT REFERENCES tenants(id) ON DELETE CASCADE,
        created_at TEXT DEFAULT {_NOW}
    );
    """,
    # Encomendas e itens (itens substituídos em bloco na edição)
    f"""
    CREATE TABLE IF NOT EXISTS orders (
        id TEXT PRIMARY KEY DEFAULT {_ID},
        customer_name TEXT NOT NULL,
        notes TEXT,
        status TEXT NOT NULL DEFAULT 'Pendente',
        total_amount REAL NOT NULL DEFAULT 0,
        tenant_id TEXT REFERENCES tenants(id) ON DELETE CASCADE,
        created_at TEXT DEFAULT {_NOW},
        updated_at TEXT DEFAULT {_NOW}
    );
    """,
    f"""
    CREATE TABLE IF NOT EXISTS order_items (
        id TEXT PRIMARY KEY DEFAULT {_ID},
        order_id TEXT NOT NULL REFERENCES orders(id) ON DELETE CASCADE,
        product_name TEXT NOT NULL,
        cost_price REAL NOT NULL DEFAULT 0 CHECK (cost_price >= 0),
        quantity INTEGER NOT NULL CHECK (quantity > 0),
        subtotal REAL NOT NULL DEFAULT 0,
        created_at TEXT DEFAULT {_NOW}
    );
    """,
    # Pedidos especiais de produto
    f"""
    CREATE TABLE IF NOT EXISTS product_order_requests (
        id TEXT PRIMARY KEY DEFAULT {_ID},
        product_id TEXT NOT NULL REFERENCES products(id),
        customer_name TEXT NOT NULL,
        requested_quantity INTEGER NOT NULL CHECK (requested_quantity > 0),
        cost_price REAL,
        sale_price REAL,
        notes TEXT,
        status TEXT NOT NULL DEFAULT 'Pendente'
            CHECK (status IN ('Pendente', 'Em Produção', 'Concluída', 'Cancelada')),
        tenant_id TEXT REFERENCES tenants(id) ON DELETE CASCADE,
        created_at TEXT DEFAULT {_NOW},
        updated_at TEXT DEFAULT {_NOW}
    );
    """,
    # Despesas; direction explícita (entrada/saida)
    f"""
    CREATE TABLE IF NOT EXISTS expenses (
        id TEXT PRIMARY KEY DEFAULT {_ID},
        description TEXT NOT NULL,
        amount REAL NOT NULL CHECK (amount >= 0),
        category TEXT NOT NULL,
        expense_date TEXT NOT NULL,
        direction TEXT NOT NULL DEFAULT 'saida' CHECK (direction IN ('entrada', 'saida')),
        observacao TEXT,
        tenant_id TEXT REFERENCES tenants(id) ON DELETE CASCADE,
        created_at TEXT DEFAULT {_NOW},
        updated_at TEXT DEFAULT {_NOW}
    );
    """,
    # Auditoria (escrita só pelos triggers da V3)
    f"""
    CREATE TABLE IF NOT EXISTS audit_log (
        id TEXT PRIMARY KEY DEFAULT {_ID},
        table_name TEXT NOT NULL,
        operation TEXT NOT NULL,
        record_id TEXT NOT NULL,
        old_values TEXT,
        new_values TEXT,
        user_name TEXT NOT NULL,
        created_at TEXT DEFAULT {_NOW}
    );
    """,
]

# Tabelas auditadas -> colunas gravadas nos snapshots JSON (nunca o hash de senha)
AUDITED_COLUMNS: Dict[str, Tuple[str, ...]] = {
    "tenants": ("id", "name"),
    "authorized_users": ("id", "username", "tenant_id", "is_admin"),
    "categories": ("id", "name", "tenant_id"),
    "customers": ("id", "name", "whatsapp", "email", "tenant_id"),
    "products": (
        "id", "name", "category_id", "cost_price", "sale_price", "quantity",
        "is_order_product", "tenant_id", "version",
    ),
    "sales": (
        "id", "customer_id", "product_id", "quantity", "unit_price", "total_price",
        "sale_date", "payment_received", "partial_payment_amount", "seller", "tenant_id",
    ),
    "orders": ("id", "customer_name", "notes", "status", "total_amount", "tenant_id"),
    "product_order_requests": (
        "id", "product_id", "customer_name", "requested_quantity", "cost_price",
        "sale_price", "notes", "status", "tenant_id",
    ),
    "expenses": ("id", "description", "amount", "category", "expense_date", "direction", "tenant_id"),
}

# O hash da senha (password -> password_hash) não gera uma segunda linha de auditoria
_UPDATE_WHEN: Dict[str, str] = {
    "authorized_users": "NOT (OLD.password IS NOT NULL AND NEW.password IS NULL)",
}


SCHEMA_V4: List[str] = [
    # Vendedores cadastrados por empresa
    f"""
    CREATE TABLE IF NOT EXISTS sellers (
        id TEXT PRIMARY KEY DEFAULT {_ID},
        name TEXT NOT NULL,
        tenant_id TEXT REFERENCES tenants(id) ON DELETE CASCADE,
        created_at TEXT DEFAULT {_NOW},
        updated_at TEXT DEFAULT {_NOW}
    );
    """,
    # Reinvestimentos: dinheiro devolvido ao caixa, abatido do investimento
    f"""
    CREATE TABLE IF NOT EXISTS reinvestments (
        id TEXT PRIMARY KEY DEFAULT {_ID},
        amount REAL NOT NULL CHECK (amount >= 0),
        date TEXT NOT NULL,
        description TEXT,
        tenant_id TEXT REFERENCES tenants(id) ON DELETE CASCADE,
        created_at TEXT DEFAULT {_NOW},
        updated_at TEXT DEFAULT {_NOW}
    );
    """,
]

AUDITED_COLUMNS_V4: Dict[str, Tuple[str, ...]] = {
    "sellers": ("id", "name", "tenant_id"),
    "reinvestments": ("id", "amount", "date", "description", "tenant_id"),
}


def _json(alias: str, cols: Tuple[str, ...]) -> str:
    pares = ", ".join(f"'{c}', {alias}.{c}" for c in cols)
    return f"json_object({pares})"


def _audit_trigger(tabela: str, operacao: str, cols: Tuple[str, ...], when: Optional[str] = None) -> str:
    old = _json("OLD", cols) if operacao in ("UPDATE", "DELETE") else "NULL"
    new = _json("NEW", cols) if operacao in ("INSERT", "UPDATE") else "NULL"
    rec = "OLD.id" if operacao == "DELETE" else "NEW.id"
    cond = f"WHEN {when}" if when else ""
    return f"""
    DROP TRIGGER IF EXISTS trg_audit_{tabela}_{operacao.lower()};
    CREATE TRIGGER trg_audit_{tabela}_{operacao.lower()}
    AFTER {operacao} ON {tabela}
    {cond}
    BEGIN
        INSERT INTO audit_log (table_name, operation, record_id, old_values, new_values, user_name)
        VALUES ('{tabela}', '{operacao}', {rec}, {old}, {new},
                COALESCE(current_setting('app.current_user'), 'sistema'));
    END;
    """


def _ensure_column(conn, table: str, column: str, ddl: str) -> None:
    """Adiciona coluna se não existir."""
    cur = conn.execute(f"PRAGMA table_info({table});")
    cols = [r[1] for r in cur.fetchall()]  # r[1] é o nome da coluna
    if column not in cols:
        conn.execute(f"ALTER TABLE {table} ADD COLUMN {ddl};")


def _apply_v1(conn) -> None:
    for sql in SCHEMA_V1:
        conn.executescript(sql)


def _apply_v2(conn) -> None:
    # products.version: incrementada a cada ajuste de estoque condicional
    _ensure_column(conn, "products", "version", "version INTEGER NOT NULL DEFAULT 0")


def _apply_v3(conn) -> None:
    for tabela, cols in AUDITED_COLUMNS.items():
        for op in ("INSERT", "UPDATE", "DELETE"):
            when = _UPDATE_WHEN.get(tabela) if op == "UPDATE" else None
            conn.executescript(_audit_trigger(tabela, op, cols, when))

    # A senha recebida em password vira bcrypt em password_hash dentro do banco
    conn.executescript(
        """
        DROP TRIGGER IF EXISTS trg_users_hash_insert;
        CREATE TRIGGER trg_users_hash_insert
        AFTER INSERT ON authorized_users
        WHEN NEW.password IS NOT NULL
        BEGIN
            UPDATE authorized_users
            SET password_hash = hash_password(NEW.password), password = NULL
            WHERE id = NEW.id;
        END;

        DROP TRIGGER IF EXISTS trg_users_hash_update;
        CREATE TRIGGER trg_users_hash_update
        AFTER UPDATE OF password ON authorized_users
        WHEN NEW.password IS NOT NULL
        BEGIN
            UPDATE authorized_users
            SET password_hash = hash_password(NEW.password), password = NULL
            WHERE id = NEW.id;
        END;

        DROP TRIGGER IF EXISTS trg_audit_log_no_update;
        CREATE TRIGGER trg_audit_log_no_update
        BEFORE UPDATE ON audit_log
        BEGIN
            SELECT RAISE(ABORT, 'audit_log é imutável');
        END;

        DROP TRIGGER IF EXISTS trg_audit_log_no_delete;
        CREATE TRIGGER trg_audit_log_no_delete
        BEFORE DELETE ON audit_log
        BEGIN
            SELECT RAISE(ABORT, 'audit_log é imutável');
        END;
        """
    )


def _apply_v4(conn) -> None:
    for sql in SCHEMA_V4:
        conn.executescript(sql)
    for tabela, cols in AUDITED_COLUMNS_V4.items():
        for op in ("INSERT", "UPDATE", "DELETE"):
            conn.executescript(_audit_trigger(tabela, op, cols))


def apply_migrations(db_path: str) -> None:
    """Aplica migrações incrementais de acordo com PRAGMA user_version."""
    with connect(db_path) as conn:
        ver = conn.execute("PRAGMA user_version;").fetchone()[0] or 0

        if ver < 1:
            _apply_v1(conn)
            conn.execute("PRAGMA user_version = 1;")
            ver = 1

        if ver < 2:
            _apply_v2(conn)
            conn.execute("PRAGMA user_version = 2;")
            ver = 2

        if ver < 3:
            _apply_v3(conn)
            conn.execute("PRAGMA user_version = 3;")
            ver = 3

        if ver < 4:
            _apply_v4(conn)
            conn.execute("PRAGMA user_version = 4;")
