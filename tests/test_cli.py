import pytest
from typer.testing import CliRunner

from loja.adapters import cli
from loja.domain.models import Ator
from loja.usecases import administracao, cadastros, encomendas

runner = CliRunner()


@pytest.fixture
def cli_db(tmp_path, monkeypatch):
    monkeypatch.setattr(cli, "SESSION_PATH", str(tmp_path / "sessao.json"))
    db_path = str(tmp_path / "cli.sqlite")
    res = runner.invoke(cli.app, ["migrate", "--db", db_path, "--admin", "admin", "--senha", "admin123"])
    assert res.exit_code == 0, res.output
    assert "Administrador 'admin' criado" in res.output
    return db_path


def _login(db_path, usuario="admin", senha="admin123"):
    res = runner.invoke(cli.app, ["login", usuario, "--senha", senha, "--db", db_path])
    assert res.exit_code == 0, res.output
    return res


def test_login_whoami_logout(cli_db):
    res = _login(cli_db)
    assert "Bem-vindo, admin (administrador)" in res.output

    res = runner.invoke(cli.app, ["whoami", "--db", cli_db])
    assert res.exit_code == 0
    assert "admin" in res.output

    res = runner.invoke(cli.app, ["logout", "--db", cli_db])
    assert res.exit_code == 0

    res = runner.invoke(cli.app, ["whoami", "--db", cli_db])
    assert res.exit_code == 1
    assert "Faça login" in res.output


def test_login_invalido(cli_db):
    res = runner.invoke(cli.app, ["login", "admin", "--senha", "errada", "--db", cli_db])
    assert res.exit_code == 1
    assert "inválidos" in res.output


def test_fluxo_de_venda_pela_cli(cli_db):
    _login(cli_db)
    res = runner.invoke(cli.app, ["empresas", "criar", "Doceria", "--db", cli_db])
    assert res.exit_code == 0, res.output

    [empresa] = administracao.listar_empresas(Ator("admin", is_admin=True), db_path=cli_db)
    res = runner.invoke(cli.app, ["usuarios", "criar", "ana", "--senha", "s3nha", "--empresa", empresa.id, "--db", cli_db])
    assert res.exit_code == 0, res.output

    _login(cli_db, "ana", "s3nha")
    res = runner.invoke(cli.app, ["produtos", "criar", "Bolo", "--custo", "4,00", "--venda", "10,00",
                                  "--quantidade", "5", "--db", cli_db])
    assert res.exit_code == 0, res.output
    produto_id = res.output.strip().rsplit("(", 1)[1].rstrip(")")

    res = runner.invoke(cli.app, ["vendas", "nova", produto_id, "2", "--db", cli_db])
    assert res.exit_code == 0, res.output
    assert "R$ 20,00" in res.output

    res = runner.invoke(cli.app, ["vendas", "nova", produto_id, "4", "--db", cli_db])
    assert res.exit_code == 1
    assert "Estoque insuficiente" in res.output

    res = runner.invoke(cli.app, ["rel", "dashboard", "--db", cli_db])
    assert res.exit_code == 0, res.output
    assert "total_vendas: 1" in res.output


def _empresa_com_usuario(cli_db):
    """Cria a empresa Doceria com a usuária ana e deixa ana logada."""
    _login(cli_db)
    runner.invoke(cli.app, ["empresas", "criar", "Doceria", "--db", cli_db])
    [empresa] = administracao.listar_empresas(Ator("admin", is_admin=True), db_path=cli_db)
    runner.invoke(cli.app, ["usuarios", "criar", "ana", "--senha", "s3nha", "--empresa", empresa.id, "--db", cli_db])
    _login(cli_db, "ana", "s3nha")
    return Ator("ana", tenant_id=empresa.id)


def _id_criado(res):
    return res.output.strip().rsplit("(", 1)[1].rstrip(")")


def test_comando_administrativo_negado_para_usuario(cli_db):
    _empresa_com_usuario(cli_db)
    res = runner.invoke(cli.app, ["empresas", "listar", "--db", cli_db])
    assert res.exit_code == 1
    assert "administradores" in res.output


def test_exportar_produtos(cli_db, tmp_path):
    _login(cli_db)
    destino = tmp_path / "produtos"
    res = runner.invoke(cli.app, ["exportar", "produtos", str(destino), "--db", cli_db])
    assert res.exit_code == 0, res.output
    assert (tmp_path / "produtos.xlsx").exists()


def test_edicao_de_cadastros(cli_db):
    ana = _empresa_com_usuario(cli_db)

    res = runner.invoke(cli.app, ["categorias", "criar", "Bolos", "--db", cli_db])
    categoria_id = _id_criado(res)
    res = runner.invoke(cli.app, ["categorias", "renomear", categoria_id, "Tortas", "--db", cli_db])
    assert res.exit_code == 0, res.output
    assert [c.name for c in cadastros.listar_categorias(ana, db_path=cli_db)] == ["Tortas"]

    res = runner.invoke(cli.app, ["clientes", "criar", "Maria", "--db", cli_db])
    cliente_id = _id_criado(res)
    res = runner.invoke(cli.app, ["clientes", "editar", cliente_id, "Maria Silva", "--email", "maria@exemplo.com",
                                  "--db", cli_db])
    assert res.exit_code == 0, res.output
    [maria] = cadastros.listar_clientes(ana, db_path=cli_db)
    assert (maria.name, maria.email) == ("Maria Silva", "maria@exemplo.com")

    res = runner.invoke(cli.app, ["produtos", "criar", "Bolo", "--venda", "10,00", "--quantidade", "5", "--db", cli_db])
    produto_id = _id_criado(res)
    res = runner.invoke(cli.app, ["produtos", "editar", produto_id, "--venda", "12,50", "--quantidade", "7",
                                  "--categoria", categoria_id, "--db", cli_db])
    assert res.exit_code == 0, res.output
    assert "estoque 7" in res.output
    assert "R$ 12,50" in res.output
    [bolo] = cadastros.listar_produtos(ana, db_path=cli_db)
    assert bolo.category_id == categoria_id
    assert bolo.name == "Bolo"

    res = runner.invoke(cli.app, ["clientes", "editar", cliente_id, "Maria", "--email", "sem-arroba", "--db", cli_db])
    assert res.exit_code == 1


def test_encomendas_e_pedidos(cli_db):
    ana = _empresa_com_usuario(cli_db)

    res = runner.invoke(cli.app, ["encomendas", "nova", "Joana", "--item", "Bolo de pote;3;4,50",
                                  "--item", "Brigadeiro;10;1", "--db", cli_db])
    assert res.exit_code == 0, res.output
    assert "R$ 23,50" in res.output
    encomenda_id = res.output.split("registrada: ")[1].split()[0]

    res = runner.invoke(cli.app, ["encomendas", "status", encomenda_id, "Em Produção", "--db", cli_db])
    assert res.exit_code == 0, res.output
    res = runner.invoke(cli.app, ["encomendas", "listar", "--db", cli_db])
    assert res.exit_code == 0, res.output
    [joana] = encomendas.listar_encomendas(ana, db_path=cli_db)
    assert joana.status == "Em Produção"
    assert len(joana.itens) == 2

    res = runner.invoke(cli.app, ["encomendas", "nova", "Joana", "--item", "Bolo", "--db", cli_db])
    assert res.exit_code == 1
    assert "Item inválido" in res.output

    res = runner.invoke(cli.app, ["produtos", "criar", "Bolo", "--custo", "4,00", "--db", cli_db])
    produto_id = _id_criado(res)
    res = runner.invoke(cli.app, ["pedidos", "novo", produto_id, "Carlos", "2", "--db", cli_db])
    assert res.exit_code == 0, res.output
    assert "Pendente" in res.output
    res = runner.invoke(cli.app, ["pedidos", "listar", "--busca", "carl", "--db", cli_db])
    assert res.exit_code == 0, res.output
    [pedido] = encomendas.buscar_pedidos_produto(ana, termo="carl", db_path=cli_db)
    assert pedido["custo_total"] == 8.0

    res = runner.invoke(cli.app, ["encomendas", "excluir", encomenda_id, "--db", cli_db])
    assert res.exit_code == 0, res.output
    assert encomendas.listar_encomendas(ana, db_path=cli_db) == []


def test_vendedores_reinvestimentos_e_investimento(cli_db):
    ana = _empresa_com_usuario(cli_db)
    res = runner.invoke(cli.app, ["vendedores", "criar", "Rita", "--db", cli_db])
    assert res.exit_code == 0, res.output

    res = runner.invoke(cli.app, ["produtos", "criar", "Bolo", "--custo", "4,00", "--venda", "10,00",
                                  "--quantidade", "5", "--db", cli_db])
    produto_id = _id_criado(res)
    res = runner.invoke(cli.app, ["vendas", "nova", produto_id, "1", "--vendedor", "Zeca", "--db", cli_db])
    assert res.exit_code == 1
    assert "Vendedor não cadastrado" in res.output
    res = runner.invoke(cli.app, ["vendas", "nova", produto_id, "1", "--vendedor", "Rita", "--db", cli_db])
    assert res.exit_code == 0, res.output

    res = runner.invoke(cli.app, ["reinvestimentos", "novo", "1,00", "01/06/2024", "--descricao", "Troco",
                                  "--db", cli_db])
    assert res.exit_code == 0, res.output
    [r] = cadastros.listar_reinvestimentos(ana, db_path=cli_db)
    assert r.date == "2024-06-01"

    res = runner.invoke(cli.app, ["rel", "investimento", "--db", cli_db])
    assert res.exit_code == 0, res.output
    assert "investimento_liquido: 3,00" in res.output
    assert "parte_por_socio: 1,50" in res.output
