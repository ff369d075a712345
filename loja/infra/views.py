# loja/infra/views.py
"""
Criação de views auxiliares para consultas frequentes.

Views criadas:
- vw_vendas_detalhe: venda + nome/custo do produto + nome do cliente
  (uma linha por venda, formato de ``VendaDetalhada``).
- vw_estoque:        produtos de pronta entrega (exclui produtos de encomenda).

Obs.:
- As views assumem que as migrações V1→V3 já foram aplicadas.
- As views expõem ``tenant_id`` para que o filtro por empresa funcione
  sobre elas exatamente como sobre as tabelas.
- Um conjunto de índices úteis também é criado, caso não existam.
"""

from __future__ import annotations

from .db import connect


def create_views(db_path: str) -> None:
    with connect(db_path) as c:
        # -----------------------
        # Views (drop + create)
        # -----------------------
        c.executescript(
            """
            ---------------------------
            -- Vendas com produto e cliente
            ---------------------------
            DROP VIEW IF EXISTS vw_vendas_detalhe;
            CREATE VIEW vw_vendas_detalhe AS
            SELECT
                s.id,
                s.quantity,
                s.unit_price,
                s.total_price,
                s.sale_date,
                s.product_id,
                COALESCE(p.name, 'Produto não encontrado') AS product_name,
                COALESCE(p.cost_price, 0)                  AS cost_price,
                s.customer_id,
                COALESCE(c.name, 'Sem cliente')            AS customer_name,
                s.payment_received,
                s.partial_payment_amount,
                s.seller,
                s.tenant_id,
                s.created_at
            FROM sales s
            LEFT JOIN products  p ON p.id = s.product_id
            LEFT JOIN customers c ON c.id = s.customer_id;

            ---------------------------
            -- Catálogo de estoque (sem produtos de encomenda)
            ---------------------------
            DROP VIEW IF EXISTS vw_estoque;
            CREATE VIEW vw_estoque AS
            SELECT
                p.id,
                p.name,
                p.category_id,
                cat.name                    AS category_name,
                p.cost_price,
                p.sale_price,
                p.quantity,
                p.cost_price * p.quantity   AS valor_custo,
                p.sale_price * p.quantity   AS valor_venda,
                p.tenant_id
            FROM products p
            LEFT JOIN categories cat ON cat.id = p.category_id
            WHERE COALESCE(p.is_order_product, 0) = 0;
            """
        )

        # --------------------------------
        # Índices úteis (IF NOT EXISTS)
        # --------------------------------
        c.executescript(
            """
            CREATE INDEX IF NOT EXISTS idx_users_tenant      ON authorized_users(tenant_id);
            CREATE INDEX IF NOT EXISTS idx_products_tenant   ON products(tenant_id);
            CREATE INDEX IF NOT EXISTS idx_categories_tenant ON categories(tenant_id);
            CREATE INDEX IF NOT EXISTS idx_customers_tenant  ON customers(tenant_id);
            CREATE INDEX IF NOT EXISTS idx_sales_tenant      ON sales(tenant_id);
            CREATE INDEX IF NOT EXISTS idx_sales_date        ON sales(sale_date);
            CREATE INDEX IF NOT EXISTS idx_sales_product     ON sales(product_id);
            CREATE INDEX IF NOT EXISTS idx_expenses_tenant   ON expenses(tenant_id);
            CREATE INDEX IF NOT EXISTS idx_expenses_date     ON expenses(expense_date);
            CREATE INDEX IF NOT EXISTS idx_orders_tenant     ON orders(tenant_id);
            CREATE INDEX IF NOT EXISTS idx_order_items_order ON order_items(order_id);
            CREATE INDEX IF NOT EXISTS idx_requests_tenant   ON product_order_requests(tenant_id);
            CREATE INDEX IF NOT EXISTS idx_audit_created     ON audit_log(created_at);
            """
        )
