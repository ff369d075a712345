"""
Executor genérico de consultas (select/insert/update/delete).

É a única porta de acesso às tabelas usada pelos repositórios. Monta o SQL
a partir de uma ``Consulta`` ou de dicionários de filtros, sempre com
parâmetros ligados; nomes de tabela e coluna passam por uma lista de
caracteres permitidos.

Escritas exigem o usuário atual carimbado na conexão (ver
``loja.infra.contexto``) e erros do SQLite são traduzidos para erros de
domínio com o contexto da tabela e da operação.
"""

from __future__ import annotations

import re
import sqlite3
import uuid
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from loja.domain.models import Consulta
from loja.infra.contexto import exigir_carimbo
from loja.infra.db import ConexaoLoja, rows_to_dicts, traduzir_erro
from loja.infra.logger import log_database_operation

_IDENT_RE = re.compile(r"^[a-z_][a-z0-9_]*$")

# Tabelas cuja coluna updated_at é mantida pelo executor
TABELAS_COM_UPDATED_AT = {
    "tenants", "categories", "customers", "products", "orders",
    "product_order_requests", "expenses", "sellers", "reinvestments",
}


def _ident(nome: str) -> str:
    if not _IDENT_RE.match(nome or ""):
        raise ValueError(f"identificador inválido: {nome!r}")
    return nome


def _where(filtros: Iterable[Tuple[str, Any]], op: str = "=") -> Tuple[List[str], List[Any]]:
    partes: List[str] = []
    params: List[Any] = []
    for col, val in filtros:
        if val is None and op == "=":
            partes.append(f"{_ident(col)} IS NULL")
        else:
            partes.append(f"{_ident(col)} {op} ?")
            params.append(val)
    return partes, params


def _montar_where(
    filtros: Iterable[Tuple[str, Any]] = (),
    minimos: Iterable[Tuple[str, Any]] = (),
    maximos: Iterable[Tuple[str, Any]] = (),
) -> Tuple[str, List[Any]]:
    p1, v1 = _where(filtros, "=")
    p2, v2 = _where(minimos, ">=")
    p3, v3 = _where(maximos, "<=")
    partes = p1 + p2 + p3
    if not partes:
        return "", []
    return " WHERE " + " AND ".join(partes), v1 + v2 + v3


def select(conn: ConexaoLoja, consulta: Consulta) -> List[Dict[str, Any]]:
    """Executa a consulta e retorna as linhas como dicionários."""
    cols = ", ".join("*" if c == "*" else _ident(c) for c in consulta.colunas)
    where, params = _montar_where(consulta.filtros, consulta.minimos, consulta.maximos)
    sql = f"SELECT {cols} FROM {_ident(consulta.tabela)}{where}"
    if consulta.ordem:
        sql += " ORDER BY " + ", ".join(
            f"{_ident(c)} {'DESC' if desc else 'ASC'}" for c, desc in consulta.ordem
        )
    if consulta.limite is not None:
        sql += " LIMIT ?"
        params.append(int(consulta.limite))
    try:
        rows = rows_to_dicts(conn.execute(sql, params))
    except sqlite3.Error as e:
        raise traduzir_erro(e, consulta.tabela, "SELECT") from e
    log_database_operation(consulta.tabela, "SELECT", len(rows))
    return rows


def insert(conn: ConexaoLoja, tabela: str, rows: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    """Insere as linhas e devolve-as como gravadas (com id e defaults do banco)."""
    username = exigir_carimbo(conn)
    inseridas: List[Dict[str, Any]] = []
    for r in rows:
        row = dict(r)
        row.setdefault("id", uuid.uuid4().hex)
        cols = [_ident(c) for c in row.keys()]
        sql = (
            f"INSERT INTO {_ident(tabela)} ({', '.join(cols)}) "
            f"VALUES ({', '.join('?' for _ in cols)})"
        )
        try:
            conn.execute(sql, list(row.values()))
            gravada = rows_to_dicts(conn.execute(f"SELECT * FROM {_ident(tabela)} WHERE id = ?", (row["id"],)))
        except sqlite3.Error as e:
            raise traduzir_erro(e, tabela, "INSERT") from e
        inseridas.extend(gravada)
    log_database_operation(tabela, "INSERT", len(inseridas), username=username)
    return inseridas


def update(
    conn: ConexaoLoja,
    tabela: str,
    patch: Mapping[str, Any],
    filtros: Mapping[str, Any],
    minimos: Optional[Mapping[str, Any]] = None,
) -> int:
    """Atualiza as linhas que casam com ``filtros`` (e ``minimos``); retorna o número afetado."""
    username = exigir_carimbo(conn)
    if not filtros:
        raise ValueError("update sem filtro não é permitido")
    patch = dict(patch)
    if tabela in TABELAS_COM_UPDATED_AT:
        patch.setdefault("updated_at", _agora(conn))
    sets = ", ".join(f"{_ident(c)} = ?" for c in patch.keys())
    where, params = _montar_where(filtros.items(), (minimos or {}).items())
    sql = f"UPDATE {_ident(tabela)} SET {sets}{where}"
    try:
        cur = conn.execute(sql, list(patch.values()) + params)
    except sqlite3.Error as e:
        raise traduzir_erro(e, tabela, "UPDATE") from e
    log_database_operation(tabela, "UPDATE", cur.rowcount, username=username)
    return cur.rowcount


def update_expr(
    conn: ConexaoLoja,
    tabela: str,
    sets_sql: str,
    set_params: List[Any],
    filtros: Mapping[str, Any],
    condicao_sql: str = "",
    condicao_params: Optional[List[Any]] = None,
) -> int:
    """UPDATE com expressões (``quantity = quantity - ?``) e condição extra.

    Usado para ajustes atômicos de estoque: a checagem e a escrita acontecem
    no mesmo comando, sem janela entre leitura e gravação.
    """
    username = exigir_carimbo(conn)
    if not filtros:
        raise ValueError("update sem filtro não é permitido")
    where, params = _montar_where(filtros.items())
    if condicao_sql:
        where += f" AND ({condicao_sql})"
        params += list(condicao_params or [])
    if tabela in TABELAS_COM_UPDATED_AT:
        sets_sql += ", updated_at = ?"
        set_params = list(set_params) + [_agora(conn)]
    sql = f"UPDATE {_ident(tabela)} SET {sets_sql}{where}"
    try:
        cur = conn.execute(sql, list(set_params) + params)
    except sqlite3.Error as e:
        raise traduzir_erro(e, tabela, "UPDATE") from e
    log_database_operation(tabela, "UPDATE", cur.rowcount, username=username, sets=sets_sql)
    return cur.rowcount


def delete(conn: ConexaoLoja, tabela: str, filtros: Mapping[str, Any]) -> int:
    """Exclui as linhas que casam com ``filtros``; retorna o número afetado."""
    username = exigir_carimbo(conn)
    if not filtros:
        raise ValueError("delete sem filtro não é permitido")
    where, params = _montar_where(filtros.items())
    try:
        cur = conn.execute(f"DELETE FROM {_ident(tabela)}{where}", params)
    except sqlite3.Error as e:
        raise traduzir_erro(e, tabela, "DELETE") from e
    log_database_operation(tabela, "DELETE", cur.rowcount, username=username)
    return cur.rowcount


def count(conn: ConexaoLoja, consulta: Consulta) -> int:
    where, params = _montar_where(consulta.filtros, consulta.minimos, consulta.maximos)
    try:
        row = conn.execute(f"SELECT COUNT(*) FROM {_ident(consulta.tabela)}{where}", params).fetchone()
    except sqlite3.Error as e:
        raise traduzir_erro(e, consulta.tabela, "SELECT") from e
    return int(row[0])


def _agora(conn: ConexaoLoja) -> str:
    return conn.execute("SELECT strftime('%Y-%m-%d %H:%M:%f', 'now')").fetchone()[0]
