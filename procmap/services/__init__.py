"""
services/ - Engine Logic
========================
Save cascade with reconciliation, and retrieval with lazy relationship loading.
Services open one storage session per public call and hand it to the repository.
"""
