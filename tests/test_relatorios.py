from datetime import date

import pytest

from loja.domain.errors import AcessoNegado, ErroValidacao
from loja.usecases import cadastros
from loja.usecases.encomendas import criar_pedido_produto, salvar_encomenda
from loja.usecases.registrar_venda import criar_venda
from loja.usecases.relatorios import (
    como_tabela,
    relatorio_auditoria,
    relatorio_custo_vendas,
    relatorio_dashboard,
    relatorio_encomendas,
    relatorio_investimento_liquido,
    relatorio_saldo_caixa,
    relatorio_vendas_por_cliente,
    relatorio_vendas_por_dia,
    relatorio_vendas_por_produto,
)

HOJE = date(2024, 6, 30)


def _seed_vendas(m):
    """Três vendas da Loja A em dois dias, uma com cliente."""
    maria = cadastros.criar_cliente(m.ana, "Maria", db_path=m.db)
    cupcake = cadastros.criar_produto(m.ana, "Cupcake", cost_price=2, sale_price=6, quantity=10, db_path=m.db)
    criar_venda(m.ana, m.bolo.id, 2, customer_id=maria.id, sale_date="2024-06-10", db_path=m.db)
    criar_venda(m.ana, cupcake.id, 5, sale_date="2024-06-10", db_path=m.db)
    criar_venda(m.ana, m.bolo.id, 1, sale_date="2024-06-20", db_path=m.db)
    return cupcake


def test_dashboard(mundo):
    _seed_vendas(mundo)
    cadastros.criar_produto(mundo.ana, "Torta", cost_price=15, sale_price=40, quantity=0, db_path=mundo.db)

    resumo = relatorio_dashboard(mundo.ana, db_path=mundo.db)
    assert resumo["total_produtos"] == 3
    assert resumo["total_clientes"] == 1
    assert resumo["total_vendas"] == 3
    assert resumo["receita_total"] == 60.0
    # bolo 5 x 4 + cupcake 5 x 2
    assert resumo["investimento_total"] == 30.0
    assert resumo["valor_estoque"] == 80.0
    assert len(resumo["vendas_recentes"]) == 3

    sem_estoque = relatorio_dashboard(mundo.ana, filtro_estoque="sem-estoque", db_path=mundo.db)
    assert sem_estoque["total_produtos"] == 1
    assert sem_estoque["valor_estoque"] == 0.0
    assert sem_estoque["investimento_total"] == 30.0


def test_dashboard_filtro_invalido(mundo):
    with pytest.raises(ErroValidacao):
        relatorio_dashboard(mundo.ana, filtro_estoque="alguns", db_path=mundo.db)


def test_dashboard_do_admin_soma_todas_as_empresas(mundo):
    _seed_vendas(mundo)
    criar_venda(mundo.bruno, mundo.vela.id, 1, sale_date="2024-06-15", db_path=mundo.db)

    assert relatorio_dashboard(mundo.admin, db_path=mundo.db)["total_vendas"] == 4
    assert relatorio_dashboard(mundo.bruno, db_path=mundo.db)["receita_total"] == 20.0


def test_vendas_por_dia(mundo):
    _seed_vendas(mundo)

    linhas = relatorio_vendas_por_dia(mundo.ana, dias=30, db_path=mundo.db, hoje=HOJE)
    assert linhas == [
        {"dia": "2024-06-10", "total_vendas": 2, "receita": 50.0, "ticket_medio": 25.0},
        {"dia": "2024-06-20", "total_vendas": 1, "receita": 10.0, "ticket_medio": 10.0},
    ]
    # janela de 15 dias começa em 2024-06-15
    assert [l["dia"] for l in relatorio_vendas_por_dia(mundo.ana, dias=15, db_path=mundo.db, hoje=HOJE)] == ["2024-06-20"]


def test_vendas_por_produto_e_cliente(mundo):
    _seed_vendas(mundo)

    produtos = relatorio_vendas_por_produto(mundo.ana, dias=30, db_path=mundo.db, hoje=HOJE)
    # empate em receita: a ordem entre os dois segue a ordem de leitura
    assert sorted(produtos, key=lambda p: p["produto"]) == [
        {"produto": "Bolo de Cenoura", "quantidade": 3, "receita": 30.0},
        {"produto": "Cupcake", "quantidade": 5, "receita": 30.0},
    ]
    assert len(relatorio_vendas_por_produto(mundo.ana, dias=30, top=1, db_path=mundo.db, hoje=HOJE)) == 1

    clientes = relatorio_vendas_por_cliente(mundo.ana, dias=30, db_path=mundo.db, hoje=HOJE)
    assert clientes[0] == {"cliente": "Sem cliente", "compras": 2, "total_gasto": 40.0}
    assert clientes[1] == {"cliente": "Maria", "compras": 1, "total_gasto": 20.0}


def test_periodo_invalido(mundo):
    with pytest.raises(ErroValidacao):
        relatorio_vendas_por_dia(mundo.ana, dias=0, db_path=mundo.db)


def test_custo_das_vendas(mundo):
    _seed_vendas(mundo)

    rel = relatorio_custo_vendas(mundo.ana, desde="2024-06-01", ate="2024-06-30", db_path=mundo.db)
    assert rel["total_vendas"] == 60.0
    # bolo: 3 x 4, cupcake: 5 x 2
    assert rel["total_custo"] == 22.0
    assert rel["total_lucro"] == 38.0
    assert rel["margem_media"] == pytest.approx(63.33, abs=0.01)
    assert {l["vendedor"] for l in rel["linhas"]} == {"Não informado"}


def test_saldo_de_caixa(mundo):
    criar_venda(mundo.ana, mundo.bolo.id, 5, unit_price=100, sale_date="2024-06-01", db_path=mundo.db)
    criar_venda(
        mundo.ana, mundo.bolo.id, 1, payment_received=False, partial_payment_amount=30,
        sale_date="2024-06-02", db_path=mundo.db,
    )
    cadastros.criar_despesa(mundo.ana, "Gasolina", 40, "Transporte", expense_date="2024-06-03", db_path=mundo.db)
    cadastros.criar_despesa(mundo.ana, "Aporte", 100, "Entrada de Caixa", expense_date="2024-06-04", db_path=mundo.db)
    cadastros.criar_despesa(mundo.ana, "Antiga", 999, "Outros", expense_date="2024-05-01", db_path=mundo.db)

    saldo = relatorio_saldo_caixa(mundo.ana, data_corte="2024-06-01", db_path=mundo.db)
    assert saldo["recebido"] == 530.0
    assert saldo["entradas"] == 100.0
    assert saldo["saidas"] == 40.0
    assert saldo["saldo"] == 590.0

    # outra empresa não enxerga nada disso
    assert relatorio_saldo_caixa(mundo.bruno, db_path=mundo.db)["saldo"] == 0.0


def test_direcao_que_contradiz_a_categoria_e_recusada(mundo):
    with pytest.raises(ErroValidacao):
        cadastros.criar_despesa(
            mundo.ana, "Aporte", 100, "Entrada de Caixa", expense_date="2024-06-05",
            direction="saida", db_path=mundo.db,
        )
    with pytest.raises(ErroValidacao):
        cadastros.criar_despesa(
            mundo.ana, "Aluguel", 40, "Aluguel", expense_date="2024-06-05",
            direction="entrada", db_path=mundo.db,
        )
    assert cadastros.listar_despesas(mundo.ana, db_path=mundo.db) == []

    # direção coerente é aceita; a categoria decide o sinal do saldo
    cadastros.criar_despesa(
        mundo.ana, "Aporte", 100, "Entrada de Caixa", expense_date="2024-06-05",
        direction="entrada", db_path=mundo.db,
    )
    cadastros.criar_despesa(mundo.ana, "Aluguel", 40, "Aluguel", expense_date="2024-06-05", db_path=mundo.db)
    assert relatorio_saldo_caixa(mundo.ana, db_path=mundo.db)["saldo"] == 60.0


def test_despesa_precisa_de_categoria_conhecida(mundo):
    with pytest.raises(ErroValidacao):
        cadastros.criar_despesa(mundo.ana, "X", 1, "Categoria inventada", db_path=mundo.db)
    with pytest.raises(ErroValidacao):
        cadastros.criar_despesa(mundo.ana, "X", 1, "Outros", direction="lateral", db_path=mundo.db)


def test_auditoria_somente_admin(mundo):
    with pytest.raises(AcessoNegado):
        relatorio_auditoria(mundo.ana, db_path=mundo.db)

    registros = relatorio_auditoria(mundo.admin, dias=1, db_path=mundo.db)
    tabelas = {r["table_name"] for r in registros}
    assert {"tenants", "authorized_users", "products"} <= tabelas
    assert registros[0]["created_at"] >= registros[-1]["created_at"]
    assert len(relatorio_auditoria(mundo.admin, dias=1, limite=2, db_path=mundo.db)) == 2


def test_relatorio_encomendas(mundo):
    salvar_encomenda(mundo.ana, "Festa", [{"product_name": "Torta", "cost_price": 30, "quantity": 2}], db_path=mundo.db)
    salvar_encomenda(
        mundo.ana, "Aniversário", [{"product_name": "Bolo", "cost_price": 20, "quantity": 1}],
        status="Concluída", db_path=mundo.db,
    )
    criar_pedido_produto(mundo.ana, mundo.bolo.id, "Joana", 3, db_path=mundo.db)

    rel = relatorio_encomendas(mundo.ana, db_path=mundo.db)
    assert rel["total_encomendas"] == 80.0
    assert {g["chave"]: g["quantidade"] for g in rel["por_status"]} == {"Pendente": 1, "Concluída": 1}
    assert rel["custo_pedidos"] == 12.0
    assert len(rel["pedidos"]) == 1


def test_como_tabela():
    cab, valores, msg = como_tabela([{"a": 1, "b": 2}], [("a", "A"), ("b", "B")])
    assert cab == ["A", "B"]
    assert valores == [[1, 2]]
    assert msg is None

    _, vazio, msg = como_tabela([], [("a", "A")], vazio="nada")
    assert vazio == []
    assert msg == "nada"


def test_investimento_liquido(mundo):
    cadastros.criar_produto(mundo.ana, "Torta", cost_price=15, sale_price=40, quantity=0, db_path=mundo.db)
    cadastros.criar_reinvestimento(mundo.ana, 5, "2024-06-01", "Devolução", db_path=mundo.db)
    cadastros.criar_reinvestimento(mundo.ana, 2, "2024-06-15", db_path=mundo.db)
    cadastros.criar_reinvestimento(mundo.bruno, 100, "2024-06-15", db_path=mundo.db)

    rel = relatorio_investimento_liquido(mundo.ana, db_path=mundo.db)
    # bolo (4) + torta (15), sem multiplicar pela quantidade
    assert rel["custo_produtos"] == 19.0
    assert rel["total_reinvestimentos"] == 7.0
    assert rel["investimento_liquido"] == 12.0
    assert rel["socios"] == 2
    assert rel["parte_por_socio"] == 6.0
    assert [r["date"] for r in rel["reinvestimentos"]] == ["2024-06-15", "2024-06-01"]

    assert relatorio_investimento_liquido(mundo.ana, socios=3, db_path=mundo.db)["parte_por_socio"] == 4.0
    with pytest.raises(ErroValidacao):
        relatorio_investimento_liquido(mundo.ana, socios=0, db_path=mundo.db)

    admin = relatorio_investimento_liquido(mundo.admin, db_path=mundo.db)
    assert admin["custo_produtos"] == 26.0
    assert admin["total_reinvestimentos"] == 107.0
