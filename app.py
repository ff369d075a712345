# app.py
"""
Entrypoint da aplicação.

Uso:
  python app.py migrate --db loja.db --admin admin --senha segredo
  python app.py login admin
  python app.py empresas criar "Loja Centro"
  python app.py vendas nova <produto_id> 2 --preco 19,90
  python app.py rel dashboard --estoque com-estoque
"""

from loja.adapters.cli import main

if __name__ == "__main__":
    main()
