"""
Fornecedores API - Ponto de entrada principal.

Execute com:
    python main.py

Ou com uvicorn:
    uvicorn main:app --reload

Configuração:
    Todas as settings ficam em fornecedores/settings.py
    Variáveis de ambiente em .env e .env.{ENVIRONMENT}
"""

from fornecedores.app import app

__all__ = ["app"]


if __name__ == "__main__":
    import uvicorn
    from fornecedores.settings import settings

    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
    )
