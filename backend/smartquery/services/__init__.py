"""
SmartQuery Backend: Services Layer
==================================

What:  Business logic between routes (HTTP) and the database.
How:   Services are stateless singletons. Each call receives the request's
       AsyncSession and the owner id derived by the Auth Gate.

Service Inventory:
    - AuthService:    registration, login, token issuance (Identity Store)
    - QueryService:   saved queries; feeds the history ledger (Query Repository)
    - HistoryService: append-only title/text ledger (History Ledger)
    - ShareService:   immutable public snapshots (Share Registry)
    - LLMService (abstract) / GeminiService: stateless AI SQL assistant
"""
