# loja/config.py
"""
Configurações globais e valores padrão da loja.
"""

import os
from dataclasses import dataclass, field
from typing import Tuple


# Caminho padrão do banco de dados SQLite
DB_PATH = os.environ.get("LOJA_DB", os.path.join(os.getcwd(), "loja.db"))

# Arquivo onde a sessão autenticada é persistida entre execuções
SESSION_PATH = os.environ.get(
    "LOJA_SESSAO", os.path.join(os.path.expanduser("~"), ".loja_sessao.json")
)

# Categoria de despesa que, na prática, representa uma entrada de caixa
CATEGORIA_ENTRADA_CAIXA = "Entrada de Caixa"

CATEGORIAS_DESPESA: Tuple[str, ...] = (
    "Material de Embalagem",
    "Transporte",
    "Marketing",
    "Aluguel",
    "Energia",
    "Internet",
    "Telefone",
    "Combustível",
    "Alimentação",
    "Equipamentos",
    "Manutenção",
    CATEGORIA_ENTRADA_CAIXA,
    "Outros",
)


@dataclass
class DefaultConfig:
    """Valores padrão para parâmetros do sistema."""
    sessao_ttl_horas: float = 24.0   # validade da sessão persistida
    bcrypt_rounds: int = 12          # custo do hash de senha no banco
    limite_auditoria: int = 500      # máximo de linhas do relatório de auditoria
    periodo_relatorio_dias: int = 30
    vendas_recentes: int = 5
    socios: int = 2                  # partes iguais do investimento líquido
    categorias_despesa: Tuple[str, ...] = field(default=CATEGORIAS_DESPESA)


# Instância global dos valores padrão
DEFAULTS = DefaultConfig()
