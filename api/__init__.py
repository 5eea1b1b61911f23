"""
API HTTP del sistema de búsqueda de convocatorias
"""
