"""Concrete adapters for the abstract contracts in :mod:`voxpipe.interfaces`.

    embedding/     -- OpenAI and Nomic (Ollama) embedding providers
    storage/       -- SQLite relational storage
    vector_store/  -- ChromaDB knowledge store
    voice/         -- ElevenLabs conversation API client
"""
