import json

import pytest

from loja.domain.errors import (
    AcessoNegado,
    ContextoNaoDefinido,
    EmpresaNaoIdentificada,
    ErroValidacao,
    RegistroDuplicado,
    SessaoExpirada,
    ViolacaoDeRestricao,
)
from loja.domain.models import Ator, Consulta
from loja.infra import executor
from loja.infra.contexto import sessao_do_ator, stamp_session, usuario_carimbado
from loja.infra.db import connect
from loja.usecases import cadastros


def _auditoria(db, tabela):
    with connect(db) as c:
        return executor.select(c, Consulta("audit_log", filtros=(("table_name", tabela),)))


def test_escrita_sem_carimbo_e_rejeitada(mundo):
    with pytest.raises(ContextoNaoDefinido):
        with connect(mundo.db) as c:
            executor.insert(c, "categories", [{"name": "Sem dono", "tenant_id": mundo.loja_a.id}])

    with connect(mundo.db) as c:
        assert executor.count(c, Consulta("categories")) == 0


def test_update_e_delete_sem_carimbo_sao_rejeitados(mundo):
    with connect(mundo.db) as c:
        with pytest.raises(ContextoNaoDefinido):
            executor.update(c, "products", {"name": "X"}, {"id": mundo.bolo.id})
        with pytest.raises(ContextoNaoDefinido):
            executor.delete(c, "products", {"id": mundo.bolo.id})


def test_carimbo_sem_usuario(mundo):
    with connect(mundo.db) as c:
        with pytest.raises(SessaoExpirada):
            stamp_session(c, None)


def test_carimbo_vale_apenas_para_a_transacao(mundo):
    with sessao_do_ator(mundo.db, mundo.ana) as c:
        assert usuario_carimbado(c) == "ana"
    # ao sair, as variáveis locais são descartadas
    assert c.variaveis == {}


def test_auditoria_atribui_o_usuario_carimbado(mundo):
    linhas = _auditoria(mundo.db, "products")
    por_registro = {json.loads(r["new_values"])["name"]: r for r in linhas if r["operation"] == "INSERT"}

    assert por_registro["Bolo de Cenoura"]["user_name"] == "ana"
    assert por_registro["Vela Aromática"]["user_name"] == "bruno"

    cadastros.atualizar_produto(mundo.admin, mundo.bolo.id, sale_price=11, db_path=mundo.db)
    updates = [r for r in _auditoria(mundo.db, "products") if r["operation"] == "UPDATE"]
    assert len(updates) == 1
    assert updates[0]["user_name"] == "admin"
    assert json.loads(updates[0]["old_values"])["sale_price"] == 10
    assert json.loads(updates[0]["new_values"])["sale_price"] == 11


def test_auditoria_nunca_grava_hash_de_senha(mundo):
    for r in _auditoria(mundo.db, "authorized_users"):
        assert "password_hash" not in (r["new_values"] or "")
        assert "senha" not in (r["new_values"] or "")


def test_audit_log_e_imutavel(mundo):
    registro = _auditoria(mundo.db, "products")[0]

    with pytest.raises(AcessoNegado):
        with sessao_do_ator(mundo.db, mundo.admin) as c:
            executor.update(c, "audit_log", {"user_name": "outro"}, {"id": registro["id"]})
    with pytest.raises(AcessoNegado):
        with sessao_do_ator(mundo.db, mundo.admin) as c:
            executor.delete(c, "audit_log", {"id": registro["id"]})

    assert _auditoria(mundo.db, "products")[0]["user_name"] == registro["user_name"]


def test_excluir_categoria_com_produtos(mundo):
    categoria = cadastros.criar_categoria(mundo.ana, "Bolos", db_path=mundo.db)
    cadastros.atualizar_produto(mundo.ana, mundo.bolo.id, category_id=categoria.id, db_path=mundo.db)

    with pytest.raises(ViolacaoDeRestricao) as exc:
        cadastros.excluir_categoria(mundo.ana, categoria.id, db_path=mundo.db)
    assert "categoria com produtos" in exc.value.mensagem
    assert [c.id for c in cadastros.listar_categorias(mundo.ana, db_path=mundo.db)] == [categoria.id]


def test_check_do_banco_vira_erro_de_validacao(mundo):
    with pytest.raises(ErroValidacao):
        with sessao_do_ator(mundo.db, mundo.ana) as c:
            executor.update(c, "products", {"quantity": -1}, {"id": mundo.bolo.id})


def test_nome_de_empresa_duplicado(mundo):
    with pytest.raises(RegistroDuplicado) as exc:
        with sessao_do_ator(mundo.db, mundo.admin) as c:
            executor.insert(c, "tenants", [{"name": "Loja A"}])
    assert "empresa" in exc.value.mensagem


def test_identificador_invalido(mundo):
    with connect(mundo.db) as c:
        with pytest.raises(ValueError):
            executor.select(c, Consulta("products; DROP TABLE products"))


def test_select_com_limites_e_ordem(mundo):
    cadastros.criar_produto(mundo.ana, "Brigadeiro", sale_price=2, quantity=50, db_path=mundo.db)
    with connect(mundo.db) as c:
        rows = executor.select(c, Consulta(
            "products",
            colunas=("name",),
            filtros=(("tenant_id", mundo.loja_a.id),),
            minimos=(("quantity", 1),),
            ordem=(("quantity", True),),
            limite=1,
        ))
    assert rows == [{"name": "Brigadeiro"}]


def test_leitura_sem_empresa_nao_vaza_dados(mundo):
    with pytest.raises(EmpresaNaoIdentificada):
        cadastros.listar_produtos(Ator("perdido"), db_path=mundo.db)


def test_isolamento_de_leitura_por_empresa(mundo):
    assert [p.name for p in cadastros.listar_produtos(mundo.ana, db_path=mundo.db)] == ["Bolo de Cenoura"]
    assert [p.name for p in cadastros.listar_produtos(mundo.bruno, db_path=mundo.db)] == ["Vela Aromática"]
    assert len(cadastros.listar_produtos(mundo.admin, db_path=mundo.db)) == 2
