# loja/usecases/administracao.py
"""
UC: Administração de empresas e usuários (somente administradores).

- Empresas: listar (com contagem de usuários), criar, renomear, excluir.
  A exclusão é recusada com ``EmpresaComUsuarios`` enquanto houver usuários
  vinculados; os cadastros da empresa são removidos em cascata.
- Usuários: listar, criar (senha obrigatória), atualizar (senha opcional),
  excluir (nunca o próprio usuário). Usuário comum precisa de empresa.

A senha vai para a coluna transitória ``password``; o banco grava o bcrypt
em ``password_hash`` e limpa a coluna na mesma instrução.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from loja.config import DB_PATH
from loja.domain.errors import EmpresaComUsuarios, ErroValidacao, LojaError
from loja.domain.models import Ator, Empresa, Usuario
from loja.domain.policies import exigir_admin
from loja.domain.validacao import exigir_senha, exigir_texto
from loja.infra.contexto import sessao_do_ator
from loja.infra.db import connect
from loja.infra.logger import log_auth, log_transaction
from loja.infra.repositories import EmpresaRepo, UsuarioRepo


def _falhou(operacao: str, data: Dict[str, Any], e: LojaError) -> None:
    log_transaction(operacao, data, error=str(e))


# -------------------------
# Empresas
# -------------------------

def listar_empresas(ator: Ator, db_path: str = DB_PATH) -> List[Empresa]:
    exigir_admin(ator)
    with connect(db_path) as c:
        return EmpresaRepo(c).listar()


def criar_empresa(ator: Ator, nome: str, db_path: str = DB_PATH) -> Empresa:
    exigir_admin(ator)
    data = {"nome": nome, "ator": ator.username}
    try:
        nome = exigir_texto(nome, "nome")
        with sessao_do_ator(db_path, ator) as c:
            empresa = EmpresaRepo(c).inserir(nome)
    except LojaError as e:
        _falhou("criar_empresa", data, e)
        raise
    log_transaction("criar_empresa", data, result=empresa.id)
    return empresa


def renomear_empresa(ator: Ator, tenant_id: str, nome: str, db_path: str = DB_PATH) -> Empresa:
    exigir_admin(ator)
    data = {"id": tenant_id, "nome": nome, "ator": ator.username}
    try:
        nome = exigir_texto(nome, "nome")
        with sessao_do_ator(db_path, ator) as c:
            empresa = EmpresaRepo(c).renomear(tenant_id, nome)
    except LojaError as e:
        _falhou("renomear_empresa", data, e)
        raise
    log_transaction("renomear_empresa", data, result=empresa.id)
    return empresa


def excluir_empresa(ator: Ator, tenant_id: str, db_path: str = DB_PATH) -> None:
    """Exclui a empresa; recusa com ``EmpresaComUsuarios`` se houver usuários."""
    exigir_admin(ator)
    data = {"id": tenant_id, "ator": ator.username}
    try:
        with sessao_do_ator(db_path, ator) as c:
            repo = EmpresaRepo(c)
            repo.obter(tenant_id)
            if repo.contar_usuarios(tenant_id) > 0:
                raise EmpresaComUsuarios()
            repo.excluir(tenant_id)
    except LojaError as e:
        _falhou("excluir_empresa", data, e)
        raise
    log_transaction("excluir_empresa", data, result="ok")


# -------------------------
# Usuários
# -------------------------

def listar_usuarios(ator: Ator, db_path: str = DB_PATH) -> List[Usuario]:
    exigir_admin(ator)
    with connect(db_path) as c:
        return UsuarioRepo(c).listar()


def _validar_vinculo(is_admin: bool, tenant_id: Optional[str]) -> None:
    if not is_admin and not tenant_id:
        raise ErroValidacao("Usuários que não são administradores precisam de uma empresa.")


def criar_usuario(
    ator: Ator,
    username: str,
    password: str,
    tenant_id: Optional[str] = None,
    is_admin: bool = False,
    db_path: str = DB_PATH,
) -> Usuario:
    exigir_admin(ator)
    data = {"username": username, "tenant_id": tenant_id, "is_admin": is_admin, "ator": ator.username}
    try:
        username = exigir_texto(username, "usuário")
        password = exigir_senha(password)
        _validar_vinculo(is_admin, tenant_id)
        with sessao_do_ator(db_path, ator) as c:
            if tenant_id:
                EmpresaRepo(c).obter(tenant_id)
            usuario = UsuarioRepo(c).inserir({
                "username": username,
                "password": password,
                "tenant_id": tenant_id or None,
                "is_admin": 1 if is_admin else 0,
            })
    except LojaError as e:
        _falhou("criar_usuario", data, e)
        raise
    log_auth("user_created", usuario.username, by=ator.username, tenant_id=usuario.tenant_id)
    log_transaction("criar_usuario", data, result=usuario.id)
    return usuario


def atualizar_usuario(
    ator: Ator,
    user_id: str,
    username: Optional[str] = None,
    password: Optional[str] = None,
    tenant_id: Optional[str] = None,
    is_admin: Optional[bool] = None,
    db_path: str = DB_PATH,
) -> Usuario:
    """Atualiza o usuário; senha vazia mantém a senha atual."""
    exigir_admin(ator)
    data = {"id": user_id, "username": username, "tenant_id": tenant_id, "ator": ator.username}
    try:
        with sessao_do_ator(db_path, ator) as c:
            repo = UsuarioRepo(c)
            atual = repo.obter(user_id)
            patch: Dict[str, Any] = {}
            if username is not None:
                patch["username"] = exigir_texto(username, "usuário")
            if password:
                patch["password"] = exigir_senha(password)
            novo_admin = bool(atual.is_admin) if is_admin is None else bool(is_admin)
            novo_tenant = atual.tenant_id if tenant_id is None else (tenant_id or None)
            _validar_vinculo(novo_admin, novo_tenant)
            if novo_tenant and novo_tenant != atual.tenant_id:
                EmpresaRepo(c).obter(novo_tenant)
            patch["is_admin"] = 1 if novo_admin else 0
            patch["tenant_id"] = novo_tenant
            usuario = repo.atualizar(user_id, patch)
    except LojaError as e:
        _falhou("atualizar_usuario", data, e)
        raise
    log_auth("user_updated", usuario.username, by=ator.username, senha_alterada=bool(password))
    log_transaction("atualizar_usuario", data, result=usuario.id)
    return usuario


def excluir_usuario(ator: Ator, user_id: str, db_path: str = DB_PATH) -> None:
    exigir_admin(ator)
    data = {"id": user_id, "ator": ator.username}
    try:
        with sessao_do_ator(db_path, ator) as c:
            repo = UsuarioRepo(c)
            usuario = repo.obter(user_id)
            if usuario.username == ator.username:
                raise ErroValidacao("Você não pode excluir o próprio usuário.")
            repo.excluir(user_id)
    except LojaError as e:
        _falhou("excluir_usuario", data, e)
        raise
    log_auth("user_deleted", usuario.username, by=ator.username)
    log_transaction("excluir_usuario", data, result="ok")


def criar_admin_inicial(username: str, password: str, db_path: str = DB_PATH) -> Usuario:
    """Cria o primeiro administrador; recusa se já existir algum usuário."""
    username = exigir_texto(username, "usuário")
    password = exigir_senha(password)
    with sessao_do_ator(db_path, Ator(username="sistema", is_admin=True)) as c:
        repo = UsuarioRepo(c)
        if repo.listar():
            raise ErroValidacao("O administrador inicial já foi criado.")
        usuario = repo.inserir({"username": username, "password": password, "is_admin": 1})
    log_auth("bootstrap_admin", usuario.username)
    return usuario
