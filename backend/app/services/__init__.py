"""
Map Services

Pure map pool / map list logic that:
- Accepts domain inputs (MapPool values, mode codes, counts, seeds)
- Returns domain outputs (pool strings, mode sequences, map lists)
- Does NOT depend on HTTP request/response objects or the database
- Does NOT mutate its inputs
"""
