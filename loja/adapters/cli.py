# loja/adapters/cli.py
"""
CLI da loja (Typer).

Comandos principais:
- migrate                          -> aplica migrações, cria views e (opcional) o admin inicial
- login / logout / whoami          -> sessão persistida em arquivo
- empresas | usuarios              -> administração (somente admin)
- categorias | clientes | produtos -> cadastros da empresa (com editar/renomear)
- vendedores | reinvestimentos     -> cadastros auxiliares
- encomendas | pedidos             -> encomendas com itens e pedidos especiais de produto
- vendas nova/editar/excluir       -> vendas com controle de estoque
- despesas                         -> despesas e entradas de caixa
- rel <relatorio>                  -> dashboard, vendas, produtos, clientes, custos, saldo, auditoria, encomendas,
                                      investimento
- exportar <produtos|vendas> <xlsx>

Erros de domínio são tratados aqui, na fronteira do comando: a mensagem é
exibida e o erro é registrado no log.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional

import typer
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from loja.adapters.exporter import exportar_excel, formatar_produtos
from loja.adapters.parsers import (
    parse_data,
    parse_dinheiro,
    parse_item_encomenda,
    parse_quantidade,
    parse_sim_nao,
)
from loja.config import DB_PATH, SESSION_PATH
from loja.domain.errors import BancoIndisponivel, LojaError
from loja.domain.models import Ator
from loja.infra.logger import get_log_summary, log_system_event
from loja.infra.migrations import apply_migrations
from loja.infra.views import create_views
from loja.usecases import administracao, cadastros, encomendas, relatorios
from loja.usecases.autenticacao import SessionStore
from loja.usecases.registrar_venda import atualizar_venda, criar_venda, excluir_venda, listar_vendas


app = typer.Typer(help="Loja multiempresa — CLI")
console = Console()


# -----------------------
# util
# -----------------------

def _fmt(val: Any) -> str:
    if isinstance(val, float):
        return f"{val:,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")
    if isinstance(val, datetime):
        return val.strftime("%d/%m/%Y")
    if val is None:
        return ""
    return str(val)


def _display_table(data: List[Dict[str, Any]], title: str = "Resultado", vazio: str = "Nenhum dado encontrado") -> None:
    """Exibe uma lista de dicts numa tabela Rich."""
    if not data:
        console.print(Panel(vazio, title=title, border_style="yellow"))
        return
    table = Table(title=title, box=box.ROUNDED)
    columns = list(data[0].keys())
    for column in columns:
        numerica = isinstance(data[0].get(column), (int, float)) and not isinstance(data[0].get(column), bool)
        table.add_column(column, justify="right" if numerica else "left")
    for row in data:
        table.add_row(*[_fmt(row.get(col)) for col in columns])
    console.print(table)


def _display_resumo(data: Dict[str, Any], title: str) -> None:
    linhas = [f"{k}: {_fmt(v)}" for k, v in data.items() if not isinstance(v, (list, dict))]
    console.print(Panel("\n".join(linhas), title=title))


@contextmanager
def _tratar_erros(operacao: str, leitura: bool = False) -> Iterator[None]:
    """Fronteira da operação: LojaError vira mensagem na tela e código de saída 1.

    Em leituras, banco indisponível degrada para uma listagem vazia.
    """
    try:
        yield
    except BancoIndisponivel as e:
        log_system_event(f"{operacao}_error", {"error": e.mensagem}, level="error")
        if leitura:
            console.print(Panel(f"Não foi possível carregar os dados.\n{e.mensagem}", title=operacao,
                                border_style="yellow"))
            return
        console.print(f"[bold red]Erro:[/] {e.mensagem}")
        raise typer.Exit(code=1)
    except LojaError as e:
        log_system_event(f"{operacao}_error", {"error": e.mensagem, "tipo": type(e).__name__}, level="error")
        console.print(f"[bold red]Erro:[/] {e.mensagem}")
        raise typer.Exit(code=1)


def _sessao(db_path: str) -> SessionStore:
    return SessionStore(db_path=db_path, caminho=SESSION_PATH)


def _ator(db_path: str) -> Ator:
    return _sessao(db_path).ator()


def _as_rows(objs) -> List[Dict[str, Any]]:
    return [dict(o.__dict__) for o in objs]


DbOpt = typer.Option(DB_PATH, "--db", help="Caminho do SQLite")


# -----------------------
# infra e sessão
# -----------------------

@app.command("migrate")
def cmd_migrate(
    admin: Optional[str] = typer.Option(None, help="Cria o administrador inicial com este usuário"),
    senha: Optional[str] = typer.Option(None, help="Senha do administrador inicial"),
    db_path: str = DbOpt,
):
    """Aplica migrações e recria as views auxiliares."""
    with _tratar_erros("migrate"):
        apply_migrations(db_path)
        create_views(db_path)
        typer.echo(f">> Migrações aplicadas e views criadas em: {db_path}")
        if admin:
            administracao.criar_admin_inicial(admin, senha or "", db_path=db_path)
            typer.echo(f">> Administrador '{admin}' criado.")


@app.command("login")
def cmd_login(
    username: str = typer.Argument(..., help="Usuário"),
    senha: str = typer.Option(..., prompt=True, hide_input=True, help="Senha"),
    db_path: str = DbOpt,
):
    """Autentica e persiste a sessão."""
    with _tratar_erros("login"):
        sessao = _sessao(db_path)
        if not sessao.login(username, senha):
            console.print("[bold red]Usuário ou senha inválidos.[/]")
            raise typer.Exit(code=1)
        ator = sessao.ator()
        papel = "administrador" if ator.is_admin else f"empresa {ator.tenant_id}"
        typer.echo(f">> Bem-vindo, {ator.username} ({papel}).")


@app.command("logout")
def cmd_logout(db_path: str = DbOpt):
    """Encerra a sessão."""
    _sessao(db_path).logout()
    typer.echo(">> Sessão encerrada.")


@app.command("whoami")
def cmd_whoami(db_path: str = DbOpt):
    """Mostra o usuário da sessão atual."""
    with _tratar_erros("whoami"):
        ator = _ator(db_path)
        _display_resumo(
            {"usuário": ator.username, "empresa": ator.tenant_id or "-", "admin": "sim" if ator.is_admin else "não"},
            title="Sessão",
        )


# -----------------------
# administração
# -----------------------

empresas_app = typer.Typer(help="Empresas (somente administradores)")
app.add_typer(empresas_app, name="empresas")


@empresas_app.command("listar")
def empresas_listar(db_path: str = DbOpt):
    with _tratar_erros("empresas_listar", leitura=True):
        empresas = administracao.listar_empresas(_ator(db_path), db_path=db_path)
        _display_table(_as_rows(empresas), title="Empresas")


@empresas_app.command("criar")
def empresas_criar(nome: str = typer.Argument(...), db_path: str = DbOpt):
    with _tratar_erros("empresas_criar"):
        e = administracao.criar_empresa(_ator(db_path), nome, db_path=db_path)
        typer.echo(f">> Empresa criada: {e.name} ({e.id})")


@empresas_app.command("renomear")
def empresas_renomear(tenant_id: str = typer.Argument(...), nome: str = typer.Argument(...), db_path: str = DbOpt):
    with _tratar_erros("empresas_renomear"):
        e = administracao.renomear_empresa(_ator(db_path), tenant_id, nome, db_path=db_path)
        typer.echo(f">> Empresa renomeada: {e.name}")


@empresas_app.command("excluir")
def empresas_excluir(tenant_id: str = typer.Argument(...), db_path: str = DbOpt):
    with _tratar_erros("empresas_excluir"):
        administracao.excluir_empresa(_ator(db_path), tenant_id, db_path=db_path)
        typer.echo(">> Empresa excluída.")


usuarios_app = typer.Typer(help="Usuários (somente administradores)")
app.add_typer(usuarios_app, name="usuarios")


@usuarios_app.command("listar")
def usuarios_listar(db_path: str = DbOpt):
    with _tratar_erros("usuarios_listar", leitura=True):
        _display_table(_as_rows(administracao.listar_usuarios(_ator(db_path), db_path=db_path)), title="Usuários")


@usuarios_app.command("criar")
def usuarios_criar(
    username: str = typer.Argument(...),
    senha: str = typer.Option(..., prompt=True, hide_input=True),
    empresa: Optional[str] = typer.Option(None, help="ID da empresa"),
    admin: bool = typer.Option(False, "--admin", help="Cria como administrador"),
    db_path: str = DbOpt,
):
    with _tratar_erros("usuarios_criar"):
        u = administracao.criar_usuario(_ator(db_path), username, senha, tenant_id=empresa, is_admin=admin,
                                        db_path=db_path)
        typer.echo(f">> Usuário criado: {u.username}")


@usuarios_app.command("atualizar")
def usuarios_atualizar(
    user_id: str = typer.Argument(...),
    username: Optional[str] = typer.Option(None),
    senha: Optional[str] = typer.Option(None, help="Nova senha (vazio mantém a atual)"),
    empresa: Optional[str] = typer.Option(None, help="ID da empresa"),
    admin: Optional[bool] = typer.Option(None, "--admin/--comum"),
    db_path: str = DbOpt,
):
    with _tratar_erros("usuarios_atualizar"):
        u = administracao.atualizar_usuario(_ator(db_path), user_id, username=username, password=senha,
                                            tenant_id=empresa, is_admin=admin, db_path=db_path)
        typer.echo(f">> Usuário atualizado: {u.username}")


@usuarios_app.command("excluir")
def usuarios_excluir(user_id: str = typer.Argument(...), db_path: str = DbOpt):
    with _tratar_erros("usuarios_excluir"):
        administracao.excluir_usuario(_ator(db_path), user_id, db_path=db_path)
        typer.echo(">> Usuário excluído.")


# -----------------------
# cadastros
# -----------------------

categorias_app = typer.Typer(help="Categorias de produto")
app.add_typer(categorias_app, name="categorias")


@categorias_app.command("listar")
def categorias_listar(db_path: str = DbOpt):
    with _tratar_erros("categorias_listar", leitura=True):
        _display_table(_as_rows(cadastros.listar_categorias(_ator(db_path), db_path=db_path)), title="Categorias")


@categorias_app.command("criar")
def categorias_criar(nome: str = typer.Argument(...), empresa: Optional[str] = typer.Option(None),
                     db_path: str = DbOpt):
    with _tratar_erros("categorias_criar"):
        c = cadastros.criar_categoria(_ator(db_path), nome, tenant_id=empresa, db_path=db_path)
        typer.echo(f">> Categoria criada: {c.name} ({c.id})")


@categorias_app.command("renomear")
def categorias_renomear(categoria_id: str = typer.Argument(...), nome: str = typer.Argument(...),
                        db_path: str = DbOpt):
    with _tratar_erros("categorias_renomear"):
        c = cadastros.renomear_categoria(_ator(db_path), categoria_id, nome, db_path=db_path)
        typer.echo(f">> Categoria renomeada: {c.name}")


@categorias_app.command("excluir")
def categorias_excluir(categoria_id: str = typer.Argument(...), db_path: str = DbOpt):
    with _tratar_erros("categorias_excluir"):
        cadastros.excluir_categoria(_ator(db_path), categoria_id, db_path=db_path)
        typer.echo(">> Categoria excluída.")


clientes_app = typer.Typer(help="Clientes")
app.add_typer(clientes_app, name="clientes")


@clientes_app.command("listar")
def clientes_listar(db_path: str = DbOpt):
    with _tratar_erros("clientes_listar", leitura=True):
        _display_table(_as_rows(cadastros.listar_clientes(_ator(db_path), db_path=db_path)), title="Clientes")


@clientes_app.command("criar")
def clientes_criar(
    nome: str = typer.Argument(...),
    whatsapp: Optional[str] = typer.Option(None),
    email: Optional[str] = typer.Option(None),
    empresa: Optional[str] = typer.Option(None),
    db_path: str = DbOpt,
):
    with _tratar_erros("clientes_criar"):
        c = cadastros.criar_cliente(_ator(db_path), nome, whatsapp, email, tenant_id=empresa, db_path=db_path)
        typer.echo(f">> Cliente criado: {c.name} ({c.id})")


@clientes_app.command("editar")
def clientes_editar(
    cliente_id: str = typer.Argument(...),
    nome: str = typer.Argument(...),
    whatsapp: Optional[str] = typer.Option(None),
    email: Optional[str] = typer.Option(None),
    db_path: str = DbOpt,
):
    """Regrava nome, WhatsApp e e-mail do cliente."""
    with _tratar_erros("clientes_editar"):
        c = cadastros.atualizar_cliente(_ator(db_path), cliente_id, nome, whatsapp, email, db_path=db_path)
        typer.echo(f">> Cliente atualizado: {c.name}")


@clientes_app.command("excluir")
def clientes_excluir(cliente_id: str = typer.Argument(...), db_path: str = DbOpt):
    with _tratar_erros("clientes_excluir"):
        cadastros.excluir_cliente(_ator(db_path), cliente_id, db_path=db_path)
        typer.echo(">> Cliente excluído.")


produtos_app = typer.Typer(help="Produtos")
app.add_typer(produtos_app, name="produtos")


@produtos_app.command("listar")
def produtos_listar(
    estoque: str = typer.Option("todos", help="todos | com-estoque | sem-estoque"),
    db_path: str = DbOpt,
):
    with _tratar_erros("produtos_listar", leitura=True):
        produtos = cadastros.listar_produtos(_ator(db_path), filtro_estoque=estoque, db_path=db_path)
        _display_table(
            [{"id": p.id, "nome": p.name, "custo": float(p.cost_price), "venda": float(p.sale_price),
              "quantidade": p.quantity, "encomenda": "sim" if p.is_order_product else "não"} for p in produtos],
            title="Produtos",
        )


@produtos_app.command("criar")
def produtos_criar(
    nome: str = typer.Argument(...),
    custo: str = typer.Option("0", help="Preço de custo (ex.: 10,50)"),
    venda: str = typer.Option("0", help="Preço de venda (ex.: 19,90)"),
    quantidade: int = typer.Option(0, min=0),
    categoria: Optional[str] = typer.Option(None, help="ID da categoria"),
    encomenda: bool = typer.Option(False, "--encomenda", help="Produto sob encomenda"),
    empresa: Optional[str] = typer.Option(None),
    db_path: str = DbOpt,
):
    with _tratar_erros("produtos_criar"):
        p = cadastros.criar_produto(
            _ator(db_path), nome, parse_dinheiro(custo), parse_dinheiro(venda), quantidade,
            category_id=categoria, is_order_product=encomenda, tenant_id=empresa, db_path=db_path,
        )
        typer.echo(f">> Produto criado: {p.name} ({p.id})")


@produtos_app.command("editar")
def produtos_editar(
    produto_id: str = typer.Argument(...),
    nome: Optional[str] = typer.Option(None),
    custo: Optional[str] = typer.Option(None, help="Preço de custo"),
    venda: Optional[str] = typer.Option(None, help="Preço de venda"),
    quantidade: Optional[int] = typer.Option(None, min=0),
    categoria: Optional[str] = typer.Option(None, help="ID da categoria"),
    encomenda: Optional[bool] = typer.Option(None, "--encomenda/--pronta-entrega"),
    db_path: str = DbOpt,
):
    """Altera apenas os campos informados."""
    with _tratar_erros("produtos_editar"):
        campos: Dict[str, Any] = {}
        if nome is not None:
            campos["name"] = nome
        if custo is not None:
            campos["cost_price"] = parse_dinheiro(custo)
        if venda is not None:
            campos["sale_price"] = parse_dinheiro(venda)
        if quantidade is not None:
            campos["quantity"] = quantidade
        if categoria is not None:
            campos["category_id"] = categoria
        if encomenda is not None:
            campos["is_order_product"] = encomenda
        p = cadastros.atualizar_produto(_ator(db_path), produto_id, db_path=db_path, **campos)
        typer.echo(f">> Produto atualizado: {p.name} (estoque {p.quantity}, venda R$ {_fmt(float(p.sale_price))})")


@produtos_app.command("excluir")
def produtos_excluir(produto_id: str = typer.Argument(...), db_path: str = DbOpt):
    with _tratar_erros("produtos_excluir"):
        cadastros.excluir_produto(_ator(db_path), produto_id, db_path=db_path)
        typer.echo(">> Produto excluído.")


# -----------------------
# vendas
# -----------------------

vendas_app = typer.Typer(help="Vendas (com baixa de estoque)")
app.add_typer(vendas_app, name="vendas")


@vendas_app.command("listar")
def vendas_listar(
    desde: Optional[str] = typer.Option(None, help="AAAA-MM-DD ou DD/MM/AAAA"),
    ate: Optional[str] = typer.Option(None, help="AAAA-MM-DD ou DD/MM/AAAA"),
    limite: Optional[int] = typer.Option(None),
    db_path: str = DbOpt,
):
    with _tratar_erros("vendas_listar", leitura=True):
        vendas = listar_vendas(_ator(db_path), parse_data(desde), parse_data(ate), limite, db_path=db_path)
        _display_table(
            [{"id": v.id, "data": v.sale_date, "produto": v.product_name, "cliente": v.customer_name,
              "quantidade": v.quantity, "unitário": float(v.unit_price), "total": float(v.total_price)}
             for v in vendas],
            title="Vendas",
        )


@vendas_app.command("nova")
def vendas_nova(
    produto: str = typer.Argument(..., help="ID do produto"),
    quantidade: str = typer.Argument(..., help="Quantidade vendida"),
    preco: Optional[str] = typer.Option(None, help="Preço unitário (padrão: preço do catálogo)"),
    cliente: Optional[str] = typer.Option(None, help="ID do cliente"),
    data: Optional[str] = typer.Option(None, help="Data da venda"),
    pendente: bool = typer.Option(False, "--pendente", help="Pagamento ainda não recebido"),
    parcial: Optional[str] = typer.Option(None, help="Valor parcial já recebido"),
    vendedor: Optional[str] = typer.Option(None),
    db_path: str = DbOpt,
):
    """Registra uma venda e baixa o estoque."""
    with _tratar_erros("vendas_nova"):
        v = criar_venda(
            _ator(db_path), produto, parse_quantidade(quantidade),
            unit_price=parse_dinheiro(preco) if preco else None,
            customer_id=cliente, sale_date=parse_data(data),
            payment_received=not pendente,
            partial_payment_amount=parse_dinheiro(parcial) if parcial else None,
            seller=vendedor, db_path=db_path,
        )
        typer.echo(f">> Venda registrada: {v.id} total R$ {_fmt(float(v.total_price))}")


@vendas_app.command("editar")
def vendas_editar(
    venda_id: str = typer.Argument(...),
    quantidade: Optional[str] = typer.Option(None),
    preco: Optional[str] = typer.Option(None),
    produto: Optional[str] = typer.Option(None, help="Trocar o produto da venda"),
    pago: Optional[str] = typer.Option(None, help="Pagamento recebido (sim/não)"),
    db_path: str = DbOpt,
):
    """Edita a venda ajustando o estoque."""
    with _tratar_erros("vendas_editar"):
        v = atualizar_venda(
            _ator(db_path), venda_id,
            quantity=parse_quantidade(quantidade) if quantidade else None,
            unit_price=parse_dinheiro(preco) if preco else None,
            product_id=produto,
            payment_received=parse_sim_nao(pago) if pago else None,
            db_path=db_path,
        )
        typer.echo(f">> Venda atualizada: {v.id} total R$ {_fmt(float(v.total_price))}")


@vendas_app.command("excluir")
def vendas_excluir(venda_id: str = typer.Argument(...), db_path: str = DbOpt):
    """Exclui a venda devolvendo o estoque."""
    with _tratar_erros("vendas_excluir"):
        devolvido = excluir_venda(_ator(db_path), venda_id, db_path=db_path)
        typer.echo(">> Venda excluída." if devolvido else ">> Venda excluída (produto não existe mais; estoque não devolvido).")


# -----------------------
# despesas
# -----------------------

despesas_app = typer.Typer(help="Despesas e entradas de caixa")
app.add_typer(despesas_app, name="despesas")


@despesas_app.command("listar")
def despesas_listar(desde: Optional[str] = typer.Option(None), ate: Optional[str] = typer.Option(None),
                    db_path: str = DbOpt):
    with _tratar_erros("despesas_listar", leitura=True):
        despesas = cadastros.listar_despesas(_ator(db_path), parse_data(desde), parse_data(ate), db_path=db_path)
        _display_table(
            [{"id": d.id, "data": d.expense_date, "descrição": d.description, "categoria": d.category,
              "direção": d.direction, "valor": float(d.amount)} for d in despesas],
            title="Despesas",
        )


@despesas_app.command("nova")
def despesas_nova(
    descricao: str = typer.Argument(...),
    valor: str = typer.Argument(...),
    categoria: str = typer.Option("Outros"),
    data: Optional[str] = typer.Option(None),
    observacao: Optional[str] = typer.Option(None),
    db_path: str = DbOpt,
):
    with _tratar_erros("despesas_nova"):
        d = cadastros.criar_despesa(_ator(db_path), descricao, parse_dinheiro(valor), categoria,
                                    expense_date=parse_data(data), observacao=observacao, db_path=db_path)
        typer.echo(f">> Despesa registrada: {d.id} ({d.direction})")


@despesas_app.command("excluir")
def despesas_excluir(despesa_id: str = typer.Argument(...), db_path: str = DbOpt):
    with _tratar_erros("despesas_excluir"):
        cadastros.excluir_despesa(_ator(db_path), despesa_id, db_path=db_path)
        typer.echo(">> Despesa excluída.")


vendedores_app = typer.Typer(help="Vendedores")
app.add_typer(vendedores_app, name="vendedores")


@vendedores_app.command("listar")
def vendedores_listar(db_path: str = DbOpt):
    with _tratar_erros("vendedores_listar", leitura=True):
        _display_table(_as_rows(cadastros.listar_vendedores(_ator(db_path), db_path=db_path)), title="Vendedores")


@vendedores_app.command("criar")
def vendedores_criar(nome: str = typer.Argument(...), empresa: Optional[str] = typer.Option(None),
                     db_path: str = DbOpt):
    with _tratar_erros("vendedores_criar"):
        v = cadastros.criar_vendedor(_ator(db_path), nome, tenant_id=empresa, db_path=db_path)
        typer.echo(f">> Vendedor criado: {v.name} ({v.id})")


@vendedores_app.command("renomear")
def vendedores_renomear(vendedor_id: str = typer.Argument(...), nome: str = typer.Argument(...),
                        db_path: str = DbOpt):
    with _tratar_erros("vendedores_renomear"):
        v = cadastros.renomear_vendedor(_ator(db_path), vendedor_id, nome, db_path=db_path)
        typer.echo(f">> Vendedor renomeado: {v.name}")


@vendedores_app.command("excluir")
def vendedores_excluir(vendedor_id: str = typer.Argument(...), db_path: str = DbOpt):
    with _tratar_erros("vendedores_excluir"):
        cadastros.excluir_vendedor(_ator(db_path), vendedor_id, db_path=db_path)
        typer.echo(">> Vendedor excluído.")


reinvestimentos_app = typer.Typer(help="Reinvestimentos")
app.add_typer(reinvestimentos_app, name="reinvestimentos")


@reinvestimentos_app.command("listar")
def reinvestimentos_listar(db_path: str = DbOpt):
    with _tratar_erros("reinvestimentos_listar", leitura=True):
        _display_table(
            [{"id": r.id, "data": r.date, "valor": float(r.amount), "descrição": r.description}
             for r in cadastros.listar_reinvestimentos(_ator(db_path), db_path=db_path)],
            title="Reinvestimentos",
        )


@reinvestimentos_app.command("novo")
def reinvestimentos_novo(
    valor: str = typer.Argument(...),
    data: str = typer.Argument(..., help="AAAA-MM-DD ou DD/MM/AAAA"),
    descricao: Optional[str] = typer.Option(None),
    empresa: Optional[str] = typer.Option(None),
    db_path: str = DbOpt,
):
    with _tratar_erros("reinvestimentos_novo"):
        r = cadastros.criar_reinvestimento(_ator(db_path), parse_dinheiro(valor), parse_data(data), descricao,
                                           tenant_id=empresa, db_path=db_path)
        typer.echo(f">> Reinvestimento registrado: {r.id} R$ {_fmt(float(r.amount))}")


@reinvestimentos_app.command("excluir")
def reinvestimentos_excluir(reinvestimento_id: str = typer.Argument(...), db_path: str = DbOpt):
    with _tratar_erros("reinvestimentos_excluir"):
        cadastros.excluir_reinvestimento(_ator(db_path), reinvestimento_id, db_path=db_path)
        typer.echo(">> Reinvestimento excluído.")


# -----------------------
# encomendas e pedidos de produto
# -----------------------

encomendas_app = typer.Typer(help="Encomendas com itens livres")
app.add_typer(encomendas_app, name="encomendas")


@encomendas_app.command("listar")
def encomendas_listar(db_path: str = DbOpt):
    with _tratar_erros("encomendas_listar", leitura=True):
        _display_table(
            [{"id": e.id, "cliente": e.customer_name, "status": e.status, "itens": len(e.itens),
              "total": float(e.total_amount), "criada em": e.created_at}
             for e in encomendas.listar_encomendas(_ator(db_path), db_path=db_path)],
            title="Encomendas",
        )


def _salvar_encomenda(db_path: str, cliente: str, itens: List[str], obs: Optional[str],
                      status: Optional[str], encomenda_id: Optional[str] = None,
                      empresa: Optional[str] = None):
    return encomendas.salvar_encomenda(
        _ator(db_path), cliente, [parse_item_encomenda(i) for i in itens], notes=obs, status=status,
        encomenda_id=encomenda_id, tenant_id=empresa, db_path=db_path,
    )


@encomendas_app.command("nova")
def encomendas_nova(
    cliente: str = typer.Argument(...),
    item: List[str] = typer.Option(..., "--item", help="produto;quantidade;custo (repita para cada item)"),
    obs: Optional[str] = typer.Option(None),
    status: Optional[str] = typer.Option(None),
    empresa: Optional[str] = typer.Option(None),
    db_path: str = DbOpt,
):
    with _tratar_erros("encomendas_nova"):
        e = _salvar_encomenda(db_path, cliente, item, obs, status, empresa=empresa)
        typer.echo(f">> Encomenda registrada: {e.id} total R$ {_fmt(float(e.total_amount))}")


@encomendas_app.command("editar")
def encomendas_editar(
    encomenda_id: str = typer.Argument(...),
    cliente: str = typer.Argument(...),
    item: List[str] = typer.Option(..., "--item", help="produto;quantidade;custo (substitui todos os itens)"),
    obs: Optional[str] = typer.Option(None),
    status: Optional[str] = typer.Option(None),
    db_path: str = DbOpt,
):
    with _tratar_erros("encomendas_editar"):
        e = _salvar_encomenda(db_path, cliente, item, obs, status, encomenda_id=encomenda_id)
        typer.echo(f">> Encomenda atualizada: {e.id} total R$ {_fmt(float(e.total_amount))}")


@encomendas_app.command("status")
def encomendas_status(encomenda_id: str = typer.Argument(...), status: str = typer.Argument(...),
                      db_path: str = DbOpt):
    with _tratar_erros("encomendas_status"):
        e = encomendas.alterar_status_encomenda(_ator(db_path), encomenda_id, status, db_path=db_path)
        typer.echo(f">> Encomenda {e.id}: {e.status}")


@encomendas_app.command("excluir")
def encomendas_excluir(encomenda_id: str = typer.Argument(...), db_path: str = DbOpt):
    with _tratar_erros("encomendas_excluir"):
        encomendas.excluir_encomenda(_ator(db_path), encomenda_id, db_path=db_path)
        typer.echo(">> Encomenda excluída.")


pedidos_app = typer.Typer(help="Pedidos especiais de produto")
app.add_typer(pedidos_app, name="pedidos")


@pedidos_app.command("listar")
def pedidos_listar(
    busca: Optional[str] = typer.Option(None, help="Trecho do nome do cliente ou do produto"),
    status: Optional[str] = typer.Option(None),
    db_path: str = DbOpt,
):
    with _tratar_erros("pedidos_listar", leitura=True):
        pedidos = encomendas.buscar_pedidos_produto(_ator(db_path), termo=busca, status=status, db_path=db_path)
        _display_table(
            [{"id": p["id"], "cliente": p["customer_name"], "produto": p["product_name"],
              "quantidade": p["requested_quantity"], "status": p["status"], "custo": p["custo_total"]}
             for p in pedidos],
            title="Pedidos de produto",
        )


@pedidos_app.command("novo")
def pedidos_novo(
    produto: str = typer.Argument(..., help="ID do produto"),
    cliente: str = typer.Argument(...),
    quantidade: str = typer.Argument(...),
    custo: Optional[str] = typer.Option(None, help="Custo próprio do pedido"),
    venda: Optional[str] = typer.Option(None, help="Preço próprio do pedido"),
    obs: Optional[str] = typer.Option(None),
    db_path: str = DbOpt,
):
    with _tratar_erros("pedidos_novo"):
        p = encomendas.criar_pedido_produto(
            _ator(db_path), produto, cliente, parse_quantidade(quantidade),
            cost_price=parse_dinheiro(custo) if custo else None,
            sale_price=parse_dinheiro(venda) if venda else None,
            notes=obs, db_path=db_path,
        )
        typer.echo(f">> Pedido registrado: {p.id} ({p.status})")


@pedidos_app.command("atualizar")
def pedidos_atualizar(
    pedido_id: str = typer.Argument(...),
    cliente: str = typer.Argument(...),
    quantidade: str = typer.Argument(...),
    status: Optional[str] = typer.Option(None),
    custo: Optional[str] = typer.Option(None),
    venda: Optional[str] = typer.Option(None),
    obs: Optional[str] = typer.Option(None),
    db_path: str = DbOpt,
):
    with _tratar_erros("pedidos_atualizar"):
        p = encomendas.atualizar_pedido_produto(
            _ator(db_path), pedido_id, cliente, parse_quantidade(quantidade), status=status,
            cost_price=parse_dinheiro(custo) if custo else None,
            sale_price=parse_dinheiro(venda) if venda else None,
            notes=obs, db_path=db_path,
        )
        typer.echo(f">> Pedido atualizado: {p.id} ({p.status})")


@pedidos_app.command("excluir")
def pedidos_excluir(pedido_id: str = typer.Argument(...), db_path: str = DbOpt):
    with _tratar_erros("pedidos_excluir"):
        encomendas.excluir_pedido_produto(_ator(db_path), pedido_id, db_path=db_path)
        typer.echo(">> Pedido excluído.")


# -----------------------
# relatórios
# -----------------------

rel_app = typer.Typer(help="Relatórios")
app.add_typer(rel_app, name="rel")


@rel_app.command("dashboard")
def rel_dashboard(estoque: str = typer.Option("todos", help="todos | com-estoque | sem-estoque"),
                  db_path: str = DbOpt):
    with _tratar_erros("rel_dashboard", leitura=True):
        res = relatorios.relatorio_dashboard(_ator(db_path), filtro_estoque=estoque, db_path=db_path)
        _display_resumo(res, title="Dashboard")
        _display_table(
            [{"data": v.sale_date, "produto": v.product_name, "cliente": v.customer_name,
              "total": float(v.total_price)} for v in res["vendas_recentes"]],
            title="Vendas recentes",
        )


@rel_app.command("vendas")
def rel_vendas(dias: int = typer.Option(30, min=1), db_path: str = DbOpt):
    with _tratar_erros("rel_vendas", leitura=True):
        res = relatorios.relatorio_vendas_por_dia(_ator(db_path), dias=dias, db_path=db_path)
        _display_table(res, title=f"Vendas por dia (últimos {dias} dias)")


@rel_app.command("produtos")
def rel_produtos(dias: int = typer.Option(30, min=1), top: Optional[int] = typer.Option(None),
                 db_path: str = DbOpt):
    with _tratar_erros("rel_produtos", leitura=True):
        res = relatorios.relatorio_vendas_por_produto(_ator(db_path), dias=dias, top=top, db_path=db_path)
        _display_table(res, title=f"Vendas por produto (últimos {dias} dias)")


@rel_app.command("clientes")
def rel_clientes(dias: int = typer.Option(30, min=1), top: Optional[int] = typer.Option(None),
                 db_path: str = DbOpt):
    with _tratar_erros("rel_clientes", leitura=True):
        res = relatorios.relatorio_vendas_por_cliente(_ator(db_path), dias=dias, top=top, db_path=db_path)
        _display_table(res, title=f"Vendas por cliente (últimos {dias} dias)")


@rel_app.command("custos")
def rel_custos(desde: Optional[str] = typer.Option(None), ate: Optional[str] = typer.Option(None),
               db_path: str = DbOpt):
    with _tratar_erros("rel_custos", leitura=True):
        res = relatorios.relatorio_custo_vendas(_ator(db_path), parse_data(desde), parse_data(ate), db_path=db_path)
        _display_table(res["linhas"], title="Custo das vendas")
        _display_resumo(res, title="Totais")


@rel_app.command("saldo")
def rel_saldo(corte: Optional[str] = typer.Option(None, help="Data de corte"), db_path: str = DbOpt):
    with _tratar_erros("rel_saldo", leitura=True):
        res = relatorios.relatorio_saldo_caixa(_ator(db_path), data_corte=parse_data(corte), db_path=db_path)
        _display_resumo(res, title="Saldo de caixa")


@rel_app.command("auditoria")
def rel_auditoria(dias: int = typer.Option(7, min=1), db_path: str = DbOpt):
    with _tratar_erros("rel_auditoria", leitura=True):
        res = relatorios.relatorio_auditoria(_ator(db_path), dias=dias, db_path=db_path)
        _display_table(
            [{"quando": r["created_at"], "tabela": r["table_name"], "operação": r["operation"],
              "registro": r["record_id"], "usuário": r["user_name"]} for r in res],
            title=f"Auditoria (últimos {dias} dias)",
        )


@rel_app.command("encomendas")
def rel_encomendas(db_path: str = DbOpt):
    with _tratar_erros("rel_encomendas", leitura=True):
        res = relatorios.relatorio_encomendas(_ator(db_path), db_path=db_path)
        _display_table(res["encomendas"], title="Encomendas")
        _display_table(
            [{"cliente": p["customer_name"], "produto": p["product_name"], "quantidade": p["requested_quantity"],
              "status": p["status"], "custo": p["custo_total"]} for p in res["pedidos"]],
            title="Pedidos de produto",
        )
        _display_resumo(res, title="Totais")


@rel_app.command("investimento")
def rel_investimento(socios: Optional[int] = typer.Option(None, min=1, help="Número de sócios"),
                     db_path: str = DbOpt):
    with _tratar_erros("rel_investimento", leitura=True):
        res = relatorios.relatorio_investimento_liquido(_ator(db_path), socios=socios, db_path=db_path)
        _display_resumo(res, title="Investimento líquido")
        _display_table(
            [{"data": r["date"], "valor": float(r["amount"]), "descrição": r["description"]}
             for r in res["reinvestimentos"]],
            title="Reinvestimentos",
        )


# -----------------------
# exportação
# -----------------------

@app.command("exportar")
def cmd_exportar(
    tipo: str = typer.Argument(..., help="produtos | vendas"),
    arquivo: str = typer.Argument(..., help="Arquivo XLSX de destino"),
    db_path: str = DbOpt,
):
    """Exporta a listagem para uma planilha XLSX."""
    with _tratar_erros("exportar"):
        ator = _ator(db_path)
        if tipo == "produtos":
            categorias = {c.id: c.name for c in cadastros.listar_categorias(ator, db_path=db_path)}
            linhas = formatar_produtos(cadastros.listar_produtos(ator, db_path=db_path), categorias)
            aba = "Produtos"
        elif tipo == "vendas":
            linhas = _as_rows(listar_vendas(ator, db_path=db_path))
            aba = "Vendas"
        else:
            console.print(f"[bold red]Tipo desconhecido:[/] {tipo} (use produtos ou vendas)")
            raise typer.Exit(code=1)
        destino = exportar_excel(linhas, arquivo, aba=aba)
        typer.echo(f">> {len(linhas)} linhas exportadas para {destino}")


@app.command("logs")
def cmd_logs(tipo: str = typer.Argument("transactions"), linhas: int = typer.Option(50)):
    """Mostra as últimas linhas de um arquivo de log."""
    resumo = get_log_summary(tipo, linhas)
    typer.echo(resumo if resumo else "(sem registros)")


# Entry point opcional:
def main():
    app()


if __name__ == "__main__":
    main()
