# Services package init
"""
Caesar Backend — Services Layer
=================================

Service Inventory:
    - GenerativeService (abstract): prompt (+ image) in, text out
    - GeminiService: GenerativeService backed by Google Gemini
    - StorageClient: action-tagged POSTs to the Apps Script web app
    - ReceiptService: analyze / suggestFolder / search handlers
    - FolderService: saveToFolder / getFolders / addFolder handlers
    - ChatDispatcher: action name → handler table
"""
