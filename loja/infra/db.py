# loja/infra/db.py
"""
Utilidades de conexão SQLite.

Além de abrir a conexão, este módulo registra as funções que o banco expõe
para os triggers e para a autenticação:

- ``current_setting(nome)``: lê uma variável de sessão da conexão
  (usada pelos triggers de auditoria para saber quem está alterando).
- ``hash_password(senha)`` / ``check_password(senha, hash)``: bcrypt,
  executados dentro do banco; a aplicação nunca compara hashes.
"""

from __future__ import annotations

import re
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

import bcrypt

from loja.config import DEFAULTS
from loja.domain.errors import (
    AcessoNegado,
    BancoIndisponivel,
    EmpresaComUsuarios,
    ErroValidacao,
    LojaError,
    RegistroDuplicado,
    ViolacaoDeRestricao,
)


class ConexaoLoja(sqlite3.Connection):
    """Conexão com variáveis de sessão (equivalente ao ``set_config`` do Postgres)."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.variaveis: Dict[str, Optional[str]] = {}
        self.variaveis_locais: set = set()

    def limpar_locais(self) -> None:
        for nome in self.variaveis_locais:
            self.variaveis.pop(nome, None)
        self.variaveis_locais.clear()


def _hash_password(senha: Optional[str]) -> Optional[str]:
    if senha is None:
        return None
    rounds = max(4, int(DEFAULTS.bcrypt_rounds))
    return bcrypt.hashpw(str(senha).encode("utf-8"), bcrypt.gensalt(rounds)).decode("utf-8")


def _check_password(senha: Optional[str], hashed: Optional[str]) -> int:
    if senha is None or not hashed:
        return 0
    try:
        return int(bcrypt.checkpw(str(senha).encode("utf-8"), str(hashed).encode("utf-8")))
    except ValueError:
        # hash gravado fora do formato bcrypt: credencial inválida
        return 0


def _registrar_funcoes(conn: ConexaoLoja) -> None:
    conn.create_function("current_setting", 1, lambda nome: conn.variaveis.get(nome))
    conn.create_function("hash_password", 1, _hash_password)
    conn.create_function("check_password", 2, _check_password)


def set_session_variable(conn: ConexaoLoja, nome: str, valor: Optional[str], local: bool = True) -> None:
    """Define uma variável de sessão na conexão.

    Com ``local=True`` a variável vale apenas até o fim da transação atual
    (commit ou rollback em ``connect``).
    """
    conn.variaveis[nome] = valor
    if local:
        conn.variaveis_locais.add(nome)
    else:
        conn.variaveis_locais.discard(nome)


def verify_login(conn: ConexaoLoja, username: str, password: str) -> bool:
    """Função de banco equivalente ao RPC ``verify_login``."""
    row = conn.execute(
        "SELECT check_password(?, password_hash) FROM authorized_users WHERE username = ?",
        (password, username),
    ).fetchone()
    return bool(row and row[0])


# -------------------------
# Tradução de erros do SQLite
# -------------------------

_FK_DELETE_MSGS = {
    "categories": "Não é possível excluir uma categoria com produtos vinculados.",
    "customers": "Não é possível excluir um cliente com vendas vinculadas.",
    "products": "Não é possível excluir um produto com pedidos vinculados.",
    "orders": "Não é possível excluir a encomenda.",
    "authorized_users": "Não é possível excluir o usuário.",
}

_UNIQUE_MSGS = {
    "authorized_users.username": "Já existe um usuário com este nome.",
    "tenants.name": "Já existe uma empresa com este nome.",
}

_UNIQUE_RE = re.compile(r"UNIQUE constraint failed: ([\w.]+)")


def traduzir_erro(exc: sqlite3.Error, tabela: Optional[str] = None, operacao: Optional[str] = None) -> LojaError:
    """Converte um erro do SQLite em erro de domínio com mensagem amigável."""
    msg = str(exc)
    if isinstance(exc, sqlite3.IntegrityError):
        if "FOREIGN KEY constraint failed" in msg:
            if operacao in ("DELETE", "UPDATE"):
                if tabela == "tenants":
                    return EmpresaComUsuarios()
                return ViolacaoDeRestricao(
                    _FK_DELETE_MSGS.get(tabela or "", "Registro em uso por outros cadastros."), tabela=tabela
                )
            return ViolacaoDeRestricao("Registro relacionado não encontrado.", tabela=tabela)
        m = _UNIQUE_RE.search(msg)
        if m:
            return RegistroDuplicado(_UNIQUE_MSGS.get(m.group(1), "Registro duplicado."), tabela=tabela)
        if "CHECK constraint failed" in msg:
            return ErroValidacao(f"Valor fora do permitido ({msg.split(':', 1)[-1].strip()}).")
        if "imutável" in msg:
            return AcessoNegado("O registro de auditoria não pode ser alterado.")
        if "NOT NULL constraint failed" in msg:
            return ErroValidacao(f"Campo obrigatório ausente ({msg.split(':', 1)[-1].strip()}).")
        return ViolacaoDeRestricao(tabela=tabela)
    return BancoIndisponivel(f"Não foi possível acessar o banco de dados: {msg}")


@contextmanager
def connect(db_path: str, existente: bool = False) -> Iterator[ConexaoLoja]:
    """
    Context manager para abrir conexão SQLite com:
    - ``existente=True``: abre só um banco que já existe (``mode=rw``),
      sem criar arquivo vazio no caminho informado
    - foreign_keys ON
    - row_factory = sqlite3.Row
    - funções do banco registradas (current_setting, hash/check de senha)
    - commit ao sair (rollback em caso de exceção)
    - variáveis de sessão locais descartadas ao fim da transação
    - erros do SQLite traduzidos para erros de domínio
    """
    try:
        if existente:
            uri = Path(db_path).resolve().as_uri() + "?mode=rw"
            conn = sqlite3.connect(uri, uri=True, factory=ConexaoLoja)
        else:
            conn = sqlite3.connect(str(db_path), factory=ConexaoLoja)
    except sqlite3.Error as e:
        raise traduzir_erro(e) from e
    try:
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON;")
        # triggers chamam funções registradas pela aplicação
        conn.execute("PRAGMA trusted_schema = ON;")
        _registrar_funcoes(conn)
        yield conn
        conn.commit()
    except sqlite3.Error as e:
        conn.rollback()
        raise traduzir_erro(e) from e
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.limpar_locais()
        conn.close()


def rows_to_dicts(cur: Any) -> list:
    cols = [d[0] for d in cur.description]
    return [dict(zip(cols, row)) for row in cur.fetchall()]
