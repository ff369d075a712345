from types import SimpleNamespace

import pytest

from loja.config import DEFAULTS
from loja.domain.models import Ator
from loja.infra.migrations import apply_migrations
from loja.infra.views import create_views
from loja.usecases import administracao, cadastros


@pytest.fixture(autouse=True)
def _bcrypt_rapido(monkeypatch):
    # custo mínimo do bcrypt para os testes não ficarem lentos
    monkeypatch.setattr(DEFAULTS, "bcrypt_rounds", 4)


@pytest.fixture
def db(tmp_path):
    db_path = str(tmp_path / "loja_test.sqlite")
    apply_migrations(db_path)
    create_views(db_path)
    return db_path


@pytest.fixture
def mundo(db):
    """Admin + duas empresas, cada uma com um usuário e um produto."""
    admin_user = administracao.criar_admin_inicial("admin", "admin123", db_path=db)
    admin = admin_user.como_ator()

    loja_a = administracao.criar_empresa(admin, "Loja A", db_path=db)
    loja_b = administracao.criar_empresa(admin, "Loja B", db_path=db)
    administracao.criar_usuario(admin, "ana", "senha-ana", tenant_id=loja_a.id, db_path=db)
    administracao.criar_usuario(admin, "bruno", "senha-bruno", tenant_id=loja_b.id, db_path=db)

    ana = Ator("ana", tenant_id=loja_a.id)
    bruno = Ator("bruno", tenant_id=loja_b.id)

    bolo = cadastros.criar_produto(ana, "Bolo de Cenoura", cost_price=4, sale_price=10, quantity=8, db_path=db)
    vela = cadastros.criar_produto(bruno, "Vela Aromática", cost_price=7, sale_price=20, quantity=3, db_path=db)

    return SimpleNamespace(
        db=db, admin=admin, ana=ana, bruno=bruno,
        loja_a=loja_a, loja_b=loja_b, bolo=bolo, vela=vela,
    )
