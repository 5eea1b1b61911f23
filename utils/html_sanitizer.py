"""
Preprocesamiento de contenido (HTML, PDF, URL, texto) antes de enviarlo al LLM
"""

import logging
import re
from bs4 import BeautifulSoup, Comment

logger = logging.getLogger(__name__)

CONTENT_TYPES = ("text", "html", "pdf", "url")


def extract_text_content(html: str) -> str:
    """
    Extrae el texto del HTML eliminando scripts, estilos y comentarios

    Conserva un salto de línea entre bloques para que el parser por reglas
    pueda trabajar línea por línea.

    Args:
        html: HTML a procesar

    Returns:
        Texto plano extraído
    """
    if not html:
        return ""

    soup = BeautifulSoup(html, 'html.parser')

    # Eliminar scripts, estilos y elementos sin contenido útil
    for element in soup.find_all(['script', 'style', 'noscript', 'iframe', 'svg']):
        element.decompose()

    # Eliminar comentarios HTML
    for comment in soup.find_all(string=lambda text: isinstance(text, Comment)):
        comment.extract()

    text = soup.get_text(separator='\n', strip=True)
    return _collapse_whitespace(text)


def _collapse_whitespace(text: str) -> str:
    # Espacios múltiples dentro de cada línea y líneas vacías repetidas
    text = re.sub(r'[ \t ]+', ' ', text)
    text = re.sub(r' *\n *', '\n', text)
    text = re.sub(r'\n{2,}', '\n', text)
    return text.strip()


def preprocess_content(content: str, content_type: str) -> str:
    """
    Limpia el contenido según su tipo

    Args:
        content: Contenido original
        content_type: "html", "pdf", "url" o "text"

    Returns:
        Texto limpio
    """
    if not content:
        return ""

    if content_type == "html":
        return extract_text_content(content)

    if content_type == "pdf":
        # Saltos de página y guiones de corte de línea del texto extraído de PDF
        text = content.replace("\f", "\n")
        text = re.sub(r'(\w)-\n(\w)', r'\1\2', text)
        return _collapse_whitespace(text)

    if content_type == "url":
        # Contenido obtenido desde una URL (markdown): quitar links e imágenes
        text = re.sub(r'!\[[^\]]*\]\([^)]*\)', '', content)
        text = re.sub(r'\[([^\]]*)\]\([^)]*\)', r'\1', text)
        return _collapse_whitespace(text)

    return _collapse_whitespace(content)
