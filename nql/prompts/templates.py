"""Localized prompt fragments. Keys mirror the sections of the user message."""

from __future__ import annotations

from typing import Dict

DEFAULT_LANGUAGE = "en"

SYSTEM: Dict[str, str] = {
    "en": (
        "You are a senior data analyst for a business KPI dashboard. "
        "Be brief, precise, and safe. Respond with a single JSON object only."
    ),
    "es": (
        "Eres un analista de datos senior para un panel de KPIs de negocio. "
        "Sé breve, preciso y seguro. Responde solo con un único objeto JSON."
    ),
}

SCHEMA_HEADER: Dict[str, str] = {
    "en": "Schema:",
    "es": "Esquema:",
}

AVAILABILITY_HEADER: Dict[str, str] = {
    "en": "Data availability (periods that actually contain rows):",
    "es": "Disponibilidad de datos (periodos que realmente tienen filas):",
}

AVAILABILITY_NONE: Dict[str, str] = {
    "en": "Data availability: not available",
    "es": "Disponibilidad de datos: no disponible",
}

AVAILABILITY_EMPTY: Dict[str, str] = {
    "en": "N/A",
    "es": "N/D",
}

NOTES_LABEL: Dict[str, str] = {
    "en": "Notes",
    "es": "Notas",
}

RULES: Dict[str, list[str]] = {
    "en": [
        'Use ONLY the provided schema (tables/columns). If the question cannot be answered, say so in "summary".',
        "Return a single SELECT statement. No mutations, no DDL, no statement separators.",
        'If the user asks for a longer window than the available periods, reduce the window to what exists and disclose it in "caveats".',
        'For "new customers" style questions, infer them by grouping the customers table per period (e.g. COUNT of customers created in each month).',
        "chartSpec.x and every chartSpec.y entry must be exact column names of the SQL result.",
        'Keep "summary" to one or two short sentences.',
        "Never return more than {row_ceiling} rows.",
    ],
    "es": [
        'Usa SOLO el esquema dado (tablas/columnas). Si la pregunta no se puede responder, indícalo en "summary".',
        "Devuelve UNA sola consulta SELECT. Sin mutaciones, sin DDL, sin separadores de sentencias.",
        'Si el usuario pide una ventana mayor que los periodos disponibles, reduce la ventana a lo que existe e indícalo en "caveats".',
        'Para preguntas tipo "nuevos clientes", infiérelas agrupando la tabla de clientes por periodo (p.ej. COUNT de clientes creados cada mes).',
        "chartSpec.x y cada entrada de chartSpec.y deben ser nombres exactos de columnas del resultado SQL.",
        'Mantén "summary" en una o dos frases cortas.',
        "Nunca devuelvas más de {row_ceiling} filas.",
    ],
}

RULES_HEADER: Dict[str, str] = {
    "en": "Rules:",
    "es": "Reglas:",
}

OUTPUT_FORMAT: Dict[str, str] = {
    "en": (
        "Output a JSON object with keys: "
        '"summary" (string), "caveats" (string, optional), "sql" (string), '
        '"chartSpec" ({"type": "line"|"bar"|"area"|"pie", "x": string, '
        '"y": [string], "title": string, "stack": boolean, "labels": {column: label}}), '
        '"askBack" (one short clarifying question, optional).'
    ),
    "es": (
        "Devuelve un objeto JSON con las claves: "
        '"summary" (texto), "caveats" (texto, opcional), "sql" (texto), '
        '"chartSpec" ({"type": "line"|"bar"|"area"|"pie", "x": texto, '
        '"y": [texto], "title": texto, "stack": booleano, "labels": {columna: etiqueta}}), '
        '"askBack" (una pregunta aclaratoria corta, opcional).'
    ),
}

QUESTION_LABEL: Dict[str, str] = {
    "en": "Question",
    "es": "Pregunta",
}

DEFAULT_EXPLANATION: Dict[str, str] = {
    "en": "I ran a safe SQL query based on your question.",
    "es": "He ejecutado una consulta SQL segura en base a tu pregunta.",
}

DEFAULT_CHART_TITLE: Dict[str, str] = {
    "en": "Generated chart",
    "es": "Gráfico generado",
}


def normalize_language(language: str | None) -> str:
    lang = (language or "").strip().lower()[:2]
    return lang if lang in SYSTEM else DEFAULT_LANGUAGE
