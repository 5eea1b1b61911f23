"""
Palabras clave para detectar el alcance geográfico de una búsqueda.

El orden importa: se revisan primero países, luego regiones de Chile y
finalmente términos internacionales.
"""

COUNTRY_KEYWORDS = {
    "chile": "chile",
    "argentina": "argentina",
    "perú": "peru",
    "peru": "peru",
    "colombia": "colombia",
    "méxico": "mexico",
    "mexico": "mexico",
    "españa": "spain",
    "spain": "spain",
    "estados unidos": "usa",
    "usa": "usa",
    "eeuu": "usa",
    "europa": "europe",
    "union europea": "europe",
    "unión europea": "europe",
}

# Nombre legible para el texto del prompt
COUNTRY_NAMES = {
    "chile": "Chile",
    "argentina": "Argentina",
    "peru": "Perú",
    "colombia": "Colombia",
    "mexico": "México",
    "spain": "España",
    "usa": "Estados Unidos",
    "europe": "la Unión Europea",
}

CHILE_REGIONS = {
    "metropolitana": "Metropolitana",
    "valparaíso": "Valparaíso",
    "valparaiso": "Valparaíso",
    "biobío": "Biobío",
    "biobio": "Biobío",
    "araucanía": "Araucanía",
    "araucania": "Araucanía",
    "los lagos": "Los Lagos",
    "antofagasta": "Antofagasta",
    "atacama": "Atacama",
    "maule": "Maule",
}

INTERNATIONAL_TERMS = [
    "internacional",
    "global",
    "worldwide",
    "latinoamérica",
    "latinoamerica",
    "iberoamérica",
    "iberoamerica",
]

DEFAULT_LOCATION_ID = "chile_plus_international"
