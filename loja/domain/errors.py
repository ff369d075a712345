"""
Erros de domínio da loja.

Toda falha que chega ao usuário é um ``LojaError`` com uma mensagem pronta
para exibição. Os erros do SQLite nunca atravessam a camada infra: o
executor de consultas os traduz para uma das classes abaixo.
"""

from __future__ import annotations

from typing import Optional


class LojaError(Exception):
    """Base de todos os erros de domínio."""

    mensagem_padrao = "Erro inesperado."

    def __init__(self, mensagem: Optional[str] = None):
        self.mensagem = mensagem or self.mensagem_padrao
        super().__init__(self.mensagem)


class ErroValidacao(LojaError):
    mensagem_padrao = "Preencha todos os campos obrigatórios."


class EstoqueInsuficiente(LojaError):
    """Quantidade pedida maior que o estoque disponível do produto."""

    def __init__(self, produto: str, disponivel: int, solicitado: int):
        self.produto = produto
        self.disponivel = disponivel
        self.solicitado = solicitado
        super().__init__(
            f"Estoque insuficiente para '{produto}': "
            f"disponível {disponivel}, solicitado {solicitado}."
        )


class EmpresaNaoIdentificada(LojaError):
    mensagem_padrao = "Empresa não identificada. Por favor, faça login novamente."


class ViolacaoDeRestricao(LojaError):
    """Violação de chave estrangeira, unicidade ou CHECK no banco."""

    mensagem_padrao = "Operação viola uma restrição do banco de dados."

    def __init__(self, mensagem: Optional[str] = None, tabela: Optional[str] = None):
        self.tabela = tabela
        super().__init__(mensagem)


class EmpresaComUsuarios(ViolacaoDeRestricao):
    mensagem_padrao = "Não é possível excluir uma empresa com usuários associados."

    def __init__(self, mensagem: Optional[str] = None):
        super().__init__(mensagem, tabela="tenants")


class RegistroDuplicado(ViolacaoDeRestricao):
    mensagem_padrao = "Registro duplicado."


class BancoIndisponivel(LojaError):
    mensagem_padrao = "Não foi possível acessar o banco de dados."


class ConflitoDeConcorrencia(LojaError):
    mensagem_padrao = "O registro foi alterado por outra operação. Tente novamente."


class AcessoNegado(LojaError):
    mensagem_padrao = "Acesso restrito a administradores."


class RegistroNaoEncontrado(LojaError):
    mensagem_padrao = "Registro não encontrado."


class SessaoExpirada(LojaError):
    mensagem_padrao = "Nenhum usuário autenticado. Faça login."


class ContextoNaoDefinido(LojaError):
    """Escrita tentada sem o usuário atual carimbado na conexão."""

    mensagem_padrao = "Usuário atual não definido na conexão; operação cancelada."
