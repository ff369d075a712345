import pytest

from loja.domain.errors import ErroValidacao, RegistroNaoEncontrado
from loja.infra.db import connect
from loja.usecases import cadastros
from loja.usecases.registrar_venda import atualizar_venda, criar_venda


def test_vendedores_por_empresa(mundo):
    cadastros.criar_vendedor(mundo.ana, "Rita", db_path=mundo.db)
    cadastros.criar_vendedor(mundo.ana, "Paulo", db_path=mundo.db)
    cadastros.criar_vendedor(mundo.bruno, "Zeca", db_path=mundo.db)

    assert [v.name for v in cadastros.listar_vendedores(mundo.ana, db_path=mundo.db)] == ["Paulo", "Rita"]
    assert [v.name for v in cadastros.listar_vendedores(mundo.bruno, db_path=mundo.db)] == ["Zeca"]
    assert len(cadastros.listar_vendedores(mundo.admin, db_path=mundo.db)) == 3
    assert {v.tenant_id for v in cadastros.listar_vendedores(mundo.ana, db_path=mundo.db)} == {mundo.loja_a.id}


def test_renomear_e_excluir_vendedor(mundo):
    rita = cadastros.criar_vendedor(mundo.ana, "Rita", db_path=mundo.db)

    assert cadastros.renomear_vendedor(mundo.ana, rita.id, "Rita Lee", db_path=mundo.db).name == "Rita Lee"
    with pytest.raises(ErroValidacao):
        cadastros.renomear_vendedor(mundo.ana, rita.id, "  ", db_path=mundo.db)

    # outra empresa não enxerga nem altera
    with pytest.raises(RegistroNaoEncontrado):
        cadastros.renomear_vendedor(mundo.bruno, rita.id, "Outra", db_path=mundo.db)
    with pytest.raises(RegistroNaoEncontrado):
        cadastros.excluir_vendedor(mundo.bruno, rita.id, db_path=mundo.db)

    cadastros.excluir_vendedor(mundo.ana, rita.id, db_path=mundo.db)
    assert cadastros.listar_vendedores(mundo.ana, db_path=mundo.db) == []


def test_vendedor_auditado_com_usuario(mundo):
    cadastros.criar_vendedor(mundo.ana, "Rita", db_path=mundo.db)
    with connect(mundo.db) as c:
        row = c.execute("SELECT user_name FROM audit_log WHERE table_name = 'sellers'").fetchone()
    assert row["user_name"] == "ana"


def test_venda_aceita_texto_livre_sem_vendedores_cadastrados(mundo):
    venda = criar_venda(mundo.ana, mundo.bolo.id, 1, seller="Qualquer Um", db_path=mundo.db)
    assert venda.seller == "Qualquer Um"


def test_venda_exige_vendedor_cadastrado(mundo):
    cadastros.criar_vendedor(mundo.ana, "Rita", db_path=mundo.db)
    cadastros.criar_vendedor(mundo.bruno, "Zeca", db_path=mundo.db)

    with pytest.raises(ErroValidacao):
        criar_venda(mundo.ana, mundo.bolo.id, 1, seller="Zeca", db_path=mundo.db)
    # nada foi gravado nem baixado
    assert cadastros.listar_produtos(mundo.ana, db_path=mundo.db)[0].quantity == 8

    venda = criar_venda(mundo.ana, mundo.bolo.id, 1, seller="Rita", db_path=mundo.db)
    assert venda.seller == "Rita"
    assert criar_venda(mundo.ana, mundo.bolo.id, 1, db_path=mundo.db).seller is None

    with pytest.raises(ErroValidacao):
        atualizar_venda(mundo.ana, venda.id, seller="Zeca", db_path=mundo.db)

    # admin vendendo para a Loja B usa os vendedores da Loja B
    assert criar_venda(mundo.admin, mundo.vela.id, 1, seller="Zeca", db_path=mundo.db).seller == "Zeca"


def test_reinvestimentos(mundo):
    r = cadastros.criar_reinvestimento(mundo.ana, "12.5", "2024-06-01", "  ", db_path=mundo.db)
    assert r.amount == 12.5
    assert r.description is None
    assert r.tenant_id == mundo.loja_a.id

    with pytest.raises(ErroValidacao):
        cadastros.criar_reinvestimento(mundo.ana, -1, "2024-06-01", db_path=mundo.db)
    with pytest.raises(ErroValidacao):
        cadastros.criar_reinvestimento(mundo.ana, 10, "", db_path=mundo.db)

    assert cadastros.listar_reinvestimentos(mundo.bruno, db_path=mundo.db) == []
    with pytest.raises(RegistroNaoEncontrado):
        cadastros.excluir_reinvestimento(mundo.bruno, r.id, db_path=mundo.db)
    cadastros.excluir_reinvestimento(mundo.ana, r.id, db_path=mundo.db)
    assert cadastros.listar_reinvestimentos(mundo.ana, db_path=mundo.db) == []
