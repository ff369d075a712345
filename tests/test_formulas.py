from math import isclose

from loja.domain.formulas import (
    agrupar_somas,
    eh_entrada,
    margem,
    saldo_caixa,
    somar,
    somar_produto,
    top_n,
    valor_recebido,
)
from loja.domain.models import Produto


def test_somar_e_somar_produto():
    rows = [{"v": 1.5, "q": 2}, {"v": None, "q": 3}, {"v": "2", "q": 1}]
    assert isclose(somar(rows, "v"), 3.5)
    produtos = [
        Produto(id="1", name="A", cost_price=2.0, quantity=3),
        Produto(id="2", name="B", cost_price=1.5, quantity=4),
    ]
    assert isclose(somar_produto(produtos, "cost_price", "quantity"), 12.0)


def test_agrupar_somas_mantem_ordem_de_chegada():
    rows = [
        {"produto": "B", "total": 10},
        {"produto": "A", "total": 5},
        {"produto": "B", "total": 2},
    ]
    grupos = agrupar_somas(rows, "produto", ["total"])
    assert [g["chave"] for g in grupos] == ["B", "A"]
    assert grupos[0]["total"] == 12
    assert grupos[0]["count"] == 2
    assert grupos[1]["count"] == 1


def test_agrupar_somas_com_chave_calculada_e_sem_contador():
    rows = [{"d": "2024-05-01T10:00", "v": 1}, {"d": "2024-05-01T18:00", "v": 2}]
    grupos = agrupar_somas(rows, lambda r: r["d"][:10], ["v"], contar_como=None)
    assert grupos == [{"chave": "2024-05-01", "v": 3.0}]


def test_top_n_estavel_em_empates():
    rows = [
        {"nome": "primeiro", "qtd": 5},
        {"nome": "maior", "qtd": 9},
        {"nome": "segundo", "qtd": 5},
        {"nome": "terceiro", "qtd": 5},
    ]
    assert [r["nome"] for r in top_n(rows, "qtd")] == ["maior", "primeiro", "segundo", "terceiro"]
    assert [r["nome"] for r in top_n(rows, "qtd", 2)] == ["maior", "primeiro"]
    assert top_n(rows, "qtd", 0) == []


def test_valor_recebido():
    assert valor_recebido({"total_price": 50, "payment_received": 1}) == 50
    assert valor_recebido({"total_price": 50, "payment_received": None}) == 50
    assert valor_recebido({"total_price": 50, "payment_received": 0, "partial_payment_amount": 20}) == 20
    assert valor_recebido({"total_price": 50, "payment_received": False}) == 0


def test_saldo_caixa_entrada_soma_e_saida_subtrai():
    vendas = [{"total_price": 500, "payment_received": 1, "sale_date": "2024-06-10"}]
    despesas = [
        {"amount": 100, "category": "Entrada de Caixa", "direction": "entrada", "expense_date": "2024-06-11"},
        {"amount": 40, "category": "Outros", "direction": "saida", "expense_date": "2024-06-12"},
    ]
    assert saldo_caixa(vendas, despesas, data_corte="2024-06-01") == 560.0


def test_saldo_caixa_sem_direcao_usa_a_categoria():
    vendas = [{"total_price": 500, "payment_received": 1}]
    despesas = [
        {"amount": 100, "category": "Entrada de Caixa"},
        {"amount": 40, "category": "Outros"},
    ]
    assert saldo_caixa(vendas, despesas) == 560.0
    assert eh_entrada({"category": "Entrada de Caixa"})
    assert not eh_entrada({"category": "Aluguel"})
    assert not eh_entrada({"category": "Entrada de Caixa", "direction": "saida"})


def test_saldo_caixa_respeita_data_de_corte():
    vendas = [
        {"total_price": 100, "payment_received": 1, "sale_date": "2024-05-31"},
        {"total_price": 200, "payment_received": 1, "sale_date": "2024-06-01"},
        {"total_price": 80, "payment_received": 0, "partial_payment_amount": 30, "sale_date": "2024-06-02"},
    ]
    despesas = [
        {"amount": 999, "direction": "saida", "expense_date": "2024-05-01"},
        {"amount": 50, "direction": "saida", "expense_date": "2024-06-05"},
    ]
    assert saldo_caixa(vendas, despesas, data_corte="2024-06-01") == 180.0
    assert saldo_caixa(vendas, despesas) == 100 + 200 + 30 - 999 - 50


def test_margem():
    assert margem(25, 100) == 25.0
    assert margem(10, 0) == 0.0
