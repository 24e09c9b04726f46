"""
Fornecedores - API de cadastro de fornecedores.

Módulos:
- settings: Configurações da aplicação
- models: Model Fornecedor
- schemas: DTOs de entrada e saída
- auth: Registro e login
- views: CRUD de fornecedores
- policies: Políticas de autorização
- app: Instância da aplicação
- cli: Comandos de administração
"""
