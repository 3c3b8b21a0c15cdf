"""
Plant Progression Backend — Services Layer
===========================================

Service Inventory:
    - TokenService:      Signs and verifies bearer tokens (python-jose)
    - CredentialService: Registers users and checks passwords (passlib/bcrypt)
    - FileService:       Validates, stores, and removes uploaded images
    - PlantStore:        Data access for plants and their progress entries
    - PlantService:      Ownership checks and upload-aware plant workflows
"""
