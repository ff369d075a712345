import pytest

from loja.domain.errors import (
    AcessoNegado,
    EmpresaComUsuarios,
    ErroValidacao,
    RegistroDuplicado,
    RegistroNaoEncontrado,
)
from loja.infra.db import connect
from loja.usecases import administracao, cadastros
from loja.usecases.autenticacao import verificar_login
from loja.usecases.registrar_venda import criar_venda


def _usuario(m, username):
    return next(u for u in administracao.listar_usuarios(m.admin, db_path=m.db) if u.username == username)


def test_listar_empresas_conta_usuarios(mundo):
    empresas = {e.name: e for e in administracao.listar_empresas(mundo.admin, db_path=mundo.db)}
    assert empresas["Loja A"].user_count == 1
    assert empresas["Loja B"].user_count == 1


def test_operacoes_administrativas_exigem_admin(mundo):
    with pytest.raises(AcessoNegado):
        administracao.listar_empresas(mundo.ana, db_path=mundo.db)
    with pytest.raises(AcessoNegado):
        administracao.criar_empresa(mundo.ana, "Loja C", db_path=mundo.db)
    with pytest.raises(AcessoNegado):
        administracao.criar_usuario(mundo.ana, "carla", "x", tenant_id=mundo.loja_a.id, db_path=mundo.db)
    with pytest.raises(AcessoNegado):
        administracao.excluir_empresa(mundo.bruno, mundo.loja_a.id, db_path=mundo.db)


def test_excluir_empresa_com_usuarios_e_recusado(mundo):
    with pytest.raises(EmpresaComUsuarios):
        administracao.excluir_empresa(mundo.admin, mundo.loja_a.id, db_path=mundo.db)
    nomes = [e.name for e in administracao.listar_empresas(mundo.admin, db_path=mundo.db)]
    assert "Loja A" in nomes


def test_excluir_empresa_sem_usuarios_remove_dados(mundo):
    criar_venda(mundo.bruno, mundo.vela.id, 1, db_path=mundo.db)
    administracao.excluir_usuario(mundo.admin, _usuario(mundo, "bruno").id, db_path=mundo.db)

    administracao.excluir_empresa(mundo.admin, mundo.loja_b.id, db_path=mundo.db)

    nomes = [e.name for e in administracao.listar_empresas(mundo.admin, db_path=mundo.db)]
    assert nomes == ["Loja A"]
    with connect(mundo.db) as c:
        assert c.execute("SELECT COUNT(*) FROM products WHERE tenant_id = ?", (mundo.loja_b.id,)).fetchone()[0] == 0
        assert c.execute("SELECT COUNT(*) FROM sales WHERE tenant_id = ?", (mundo.loja_b.id,)).fetchone()[0] == 0


def test_excluir_empresa_inexistente(mundo):
    with pytest.raises(RegistroNaoEncontrado):
        administracao.excluir_empresa(mundo.admin, "nao-existe", db_path=mundo.db)


def test_renomear_empresa(mundo):
    empresa = administracao.renomear_empresa(mundo.admin, mundo.loja_a.id, "Doceria A", db_path=mundo.db)
    assert empresa.name == "Doceria A"
    with pytest.raises(RegistroDuplicado):
        administracao.renomear_empresa(mundo.admin, mundo.loja_a.id, "Loja B", db_path=mundo.db)


def test_criar_usuario_duplicado(mundo):
    with pytest.raises(RegistroDuplicado) as exc:
        administracao.criar_usuario(mundo.admin, "ana", "outra", tenant_id=mundo.loja_a.id, db_path=mundo.db)
    assert "usuário" in exc.value.mensagem


def test_usuario_comum_precisa_de_empresa(mundo):
    with pytest.raises(ErroValidacao):
        administracao.criar_usuario(mundo.admin, "carla", "senha", db_path=mundo.db)
    with pytest.raises(RegistroNaoEncontrado):
        administracao.criar_usuario(mundo.admin, "carla", "senha", tenant_id="nao-existe", db_path=mundo.db)

    admin2 = administracao.criar_usuario(mundo.admin, "gerente", "senha", is_admin=True, db_path=mundo.db)
    assert admin2.is_admin
    assert admin2.tenant_id is None


def test_criar_usuario_exige_senha(mundo):
    with pytest.raises(ErroValidacao):
        administracao.criar_usuario(mundo.admin, "carla", "", tenant_id=mundo.loja_a.id, db_path=mundo.db)


def test_atualizar_usuario_troca_senha_e_empresa(mundo):
    ana = _usuario(mundo, "ana")

    atualizado = administracao.atualizar_usuario(
        mundo.admin, ana.id, password="nova-senha", tenant_id=mundo.loja_b.id, db_path=mundo.db
    )
    assert atualizado.tenant_id == mundo.loja_b.id
    assert verificar_login("ana", "nova-senha", db_path=mundo.db)
    assert not verificar_login("ana", "senha-ana", db_path=mundo.db)

    # senha vazia mantém a atual
    administracao.atualizar_usuario(mundo.admin, ana.id, username="ana", password="", db_path=mundo.db)
    assert verificar_login("ana", "nova-senha", db_path=mundo.db)


def test_admin_nao_exclui_a_si_mesmo(mundo):
    with pytest.raises(ErroValidacao):
        administracao.excluir_usuario(mundo.admin, _usuario(mundo, "admin").id, db_path=mundo.db)


def test_admin_inicial_so_uma_vez(mundo):
    with pytest.raises(ErroValidacao):
        administracao.criar_admin_inicial("outro", "senha", db_path=mundo.db)


def test_admin_cadastra_para_uma_empresa(mundo):
    categoria = cadastros.criar_categoria(mundo.admin, "Velas", tenant_id=mundo.loja_b.id, db_path=mundo.db)
    assert categoria.tenant_id == mundo.loja_b.id
    assert [c.name for c in cadastros.listar_categorias(mundo.bruno, db_path=mundo.db)] == ["Velas"]
    assert cadastros.listar_categorias(mundo.ana, db_path=mundo.db) == []


def test_usuario_nao_cadastra_em_outra_empresa(mundo):
    with pytest.raises(AcessoNegado):
        cadastros.criar_cliente(mundo.ana, "Intrusa", tenant_id=mundo.loja_b.id, db_path=mundo.db)


def test_senha_com_prefixo_de_bcrypt_tambem_e_hasheada(mundo):
    administracao.criar_usuario(mundo.admin, "carla", "$2b$minhasenha", tenant_id=mundo.loja_a.id, db_path=mundo.db)

    with connect(mundo.db) as c:
        row = c.execute(
            "SELECT password, password_hash FROM authorized_users WHERE username = 'carla'"
        ).fetchone()
    assert row["password"] is None
    assert row["password_hash"] != "$2b$minhasenha"
    assert verificar_login("carla", "$2b$minhasenha", db_path=mundo.db)

    carla = _usuario(mundo, "carla")
    administracao.atualizar_usuario(mundo.admin, carla.id, password="$2b$outra", db_path=mundo.db)
    assert verificar_login("carla", "$2b$outra", db_path=mundo.db)
    assert not verificar_login("carla", "$2b$minhasenha", db_path=mundo.db)


def test_senha_em_texto_nunca_fica_gravada(mundo):
    with connect(mundo.db) as c:
        rows = c.execute("SELECT password FROM authorized_users").fetchall()
    assert [r["password"] for r in rows] == [None, None, None]


def test_troca_de_senha_gera_uma_linha_de_auditoria(mundo):
    ana = _usuario(mundo, "ana")
    administracao.atualizar_usuario(mundo.admin, ana.id, password="nova-senha", db_path=mundo.db)

    with connect(mundo.db) as c:
        updates = c.execute(
            "SELECT new_values FROM audit_log WHERE table_name = 'authorized_users' AND operation = 'UPDATE'"
        ).fetchall()
    assert len(updates) == 1
    assert "nova-senha" not in updates[0]["new_values"]


def test_senha_acima_de_72_bytes_e_recusada(mundo):
    with pytest.raises(ErroValidacao) as exc:
        administracao.criar_usuario(mundo.admin, "longo", "x" * 80, tenant_id=mundo.loja_a.id, db_path=mundo.db)
    assert "72 bytes" in exc.value.mensagem
    assert all(u.username != "longo" for u in administracao.listar_usuarios(mundo.admin, db_path=mundo.db))

    # 72 bytes contados em UTF-8: 36 letras acentuadas já chegam ao limite
    administracao.criar_usuario(mundo.admin, "limite", "é" * 36, tenant_id=mundo.loja_a.id, db_path=mundo.db)
    with pytest.raises(ErroValidacao):
        administracao.atualizar_usuario(mundo.admin, _usuario(mundo, "limite").id, password="é" * 37,
                                        db_path=mundo.db)
    assert verificar_login("limite", "é" * 36, db_path=mundo.db)


def test_admin_inicial_valida_a_senha(db):
    with pytest.raises(ErroValidacao):
        administracao.criar_admin_inicial("admin", "y" * 73, db_path=db)
    with pytest.raises(ErroValidacao):
        administracao.criar_admin_inicial("admin", "", db_path=db)
