"""
Modelo de datos para convocatorias de financiamiento validadas

Define la estructura canónica de una convocatoria que ya pasó el validador
anti-fabricación. Los campos cuyo valor real se desconoce llevan siempre la
frase centinela canónica de ese campo, nunca un valor inventado.
"""

from typing import List, Literal
from pydantic import BaseModel, Field, ConfigDict


# Frases centinela canónicas por campo
DESCRIPTION_SENTINEL = "Descripción no disponible en fuente"
AMOUNT_SENTINEL = "Monto no especificado en fuente"
DEADLINE_SENTINEL = "Fecha no disponible en fuente"
REQUIREMENTS_SENTINEL = "Requisitos no detallados en fuente"
GENERIC_SENTINEL = "NO DISPONIBLE EN FUENTE"

FIELD_SENTINELS = {
    "description": DESCRIPTION_SENTINEL,
    "amount": AMOUNT_SENTINEL,
    "deadline": DEADLINE_SENTINEL,
    "requirements": REQUIREMENTS_SENTINEL,
    "category": GENERIC_SENTINEL,
}

# Campos opcionales que pueden llevar centinela
OPTIONAL_TEXT_FIELDS = ["description", "amount", "deadline", "requirements", "category"]

# Campos obligatorios para entrar a validación
REQUIRED_FIELDS = ["title", "organization", "source_url"]

NOT_SPECIFIED_SOURCE = "No especificado"

VerificationStatus = Literal["VERIFIED", "PARTIAL", "UNVERIFIED"]
ExtractionMethod = Literal["ai", "step1_list", "rule_based", "synthetic"]


class DataVerification(BaseModel):
    """Banderas de verificación por campo, en el formato SI/NO que usa el almacenamiento."""

    title_verified: Literal["SI", "NO"] = "NO"
    amount_verified: Literal["SI", "NO"] = "NO"
    deadline_verified: Literal["SI", "NO"] = "NO"
    source_accessible: Literal["SI", "NO"] = "NO"


class DataExtractionNotes(BaseModel):
    """Procedencia declarada de cada campo y estado global de verificación."""

    title_source: str = NOT_SPECIFIED_SOURCE
    amount_source: str = NOT_SPECIFIED_SOURCE
    deadline_source: str = NOT_SPECIFIED_SOURCE
    verification_status: VerificationStatus = "UNVERIFIED"


class Convocatoria(BaseModel):
    """
    Convocatoria validada.

    El puntaje de confiabilidad se recalcula siempre de forma determinística
    a partir de las banderas de verificación y la cantidad de campos centinela;
    nunca se usa el valor que reportó el modelo.
    """

    title: str = Field(..., description="Nombre oficial de la convocatoria")
    organization: str = Field(..., description="Organismo que administra la convocatoria")
    description: str = Field(DESCRIPTION_SENTINEL, description="Descripción breve (máximo 300 caracteres)")
    amount: str = Field(AMOUNT_SENTINEL, description="Monto tal como aparece en la fuente")
    deadline: str = Field(DEADLINE_SENTINEL, description="Fecha de cierre tal como aparece en la fuente")
    requirements: str = Field(REQUIREMENTS_SENTINEL, description="Requisitos de postulación")
    source_url: str = Field(..., description="URL específica de la convocatoria")
    category: str = Field(GENERIC_SENTINEL, description="Área o tipo de financiamiento")
    status: str = Field("consultar", description="Estado: abierto, cerrado, próximo o consultar")
    tags: List[str] = Field(default_factory=list)
    data_verification: DataVerification = Field(default_factory=DataVerification)
    data_extraction_notes: DataExtractionNotes = Field(default_factory=DataExtractionNotes)
    reliability_score: int = Field(50, ge=0, le=100, description="Puntaje de confiabilidad determinístico")
    extraction_method: ExtractionMethod = Field("ai", description="Origen del registro")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Semilla Inicia",
                "organization": "CORFO",
                "description": "Subsidio para emprendimientos con potencial de alto impacto",
                "amount": "Hasta 15.000.000 pesos por proyecto",
                "deadline": "2026-11-30",
                "requirements": "Personas naturales mayores de 18 años",
                "source_url": "https://www.corfo.cl/sites/cpp/convocatorias/semilla_inicia",
                "category": "Emprendimiento",
                "status": "abierto",
                "tags": ["emprendimiento", "startups"],
                "data_verification": {
                    "title_verified": "SI",
                    "amount_verified": "SI",
                    "deadline_verified": "NO",
                    "source_accessible": "SI",
                },
                "data_extraction_notes": {
                    "title_source": "Sitio oficial CORFO",
                    "amount_source": "Bases del concurso",
                    "deadline_source": "No especificado",
                    "verification_status": "PARTIAL",
                },
                "reliability_score": 82,
                "extraction_method": "ai",
            }
        }
    )
