"""
Validações de campos de formulário, aplicadas antes de qualquer escrita.
"""

from __future__ import annotations

from typing import Any, Optional

from loja.domain.errors import ErroValidacao


def exigir_texto(valor: Any, campo: str) -> str:
    s = str(valor).strip() if valor is not None else ""
    if not s:
        raise ErroValidacao(f"O campo '{campo}' é obrigatório.")
    return s


def texto_opcional(valor: Any) -> Optional[str]:
    if valor is None:
        return None
    s = str(valor).strip()
    return s or None


def exigir_inteiro(valor: Any, campo: str, minimo: int = 0) -> int:
    """Inteiro >= ``minimo``; aceita ``"3"`` e ``3.0``, rejeita ``3.5``."""
    try:
        f = float(valor)
    except (TypeError, ValueError):
        raise ErroValidacao(f"O campo '{campo}' deve ser um número inteiro.") from None
    if not f.is_integer():
        raise ErroValidacao(f"O campo '{campo}' deve ser um número inteiro.")
    i = int(f)
    if i < minimo:
        raise ErroValidacao(f"O campo '{campo}' deve ser maior ou igual a {minimo}.")
    return i


def exigir_valor(valor: Any, campo: str) -> float:
    """Valor monetário não negativo, arredondado em centavos."""
    try:
        f = float(valor)
    except (TypeError, ValueError):
        raise ErroValidacao(f"O campo '{campo}' deve ser numérico.") from None
    if f != f or f < 0:
        raise ErroValidacao(f"O campo '{campo}' não pode ser negativo.")
    return round(f, 2)


# bcrypt só considera os primeiros 72 bytes da senha
SENHA_MAX_BYTES = 72


def exigir_senha(valor: Any) -> str:
    """Senha não vazia com no máximo ``SENHA_MAX_BYTES`` bytes em UTF-8."""
    senha = "" if valor is None else str(valor)
    if not senha:
        raise ErroValidacao("Senha é obrigatória para novos usuários.")
    if len(senha.encode("utf-8")) > SENHA_MAX_BYTES:
        raise ErroValidacao(f"A senha deve ter no máximo {SENHA_MAX_BYTES} bytes.")
    return senha
