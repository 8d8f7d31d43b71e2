"""LLM prompt templates for debit sheet extraction.

Templates are versioned; the version is recorded in the extraction log so a
reply can be replayed against the prompt that produced it.
"""

DEBIT_SHEET_PROMPT_VERSION = "debit_sheet_extract_v1"

DEBIT_SHEET_EXTRACT_V1_SYSTEM = """Tu es un moteur d'extraction de fiches de débit pour un atelier de taille de pierre.
Règles:
- Réponds UNIQUEMENT avec un objet JSON. Pas de Markdown, pas d'explication.
- Si un champ est absent ou illisible, mets une chaîne vide ou 0 (n'invente rien).
- Nombres avec un point comme séparateur décimal.
- Dates au format JJ/MM/AAAA."""

DEBIT_SHEET_EXTRACT_V1_USER = """Extrais la fiche de débit ci-jointe dans ce schéma JSON exact:

{
  "numeroOS": string,
  "numeroARC": string,
  "dateArc": string,
  "delai": string,
  "poids": number,
  "cumulQte": number,
  "client": string,
  "chantier": string,
  "commercial": string,
  "items": [
    {
      "item": string,
      "materiaux": string,
      "finition": string,
      "longueur": number,
      "largeur": number,
      "epaisseur": number,
      "quantite": number,
      "qte": number,
      "m2Item": number|null,
      "m3Item": number|null,
      "chant": string,
      "croquis": string
    }
  ],
  "confidence": number,
  "warnings": [string]
}

En-tête:
- numeroOS: valeur après "OS N°"
- numeroARC: valeur après "ARC N°" (souvent en haut à droite). CHAMP CRITIQUE.
- dateArc: date après "Du :"
- delai: date après "Délai :". CHAMP CRITIQUE, date complète.
- poids: nombre après "Poids :"
- cumulQte: nombre après "Cumul Qté :"
- client: raison sociale du client, juste avant "Chantier :" (peut tenir sur plusieurs lignes)
- chantier: texte après "Chantier :"
- commercial: initiales après "Resp :" ou "Cial :"

Lignes du tableau (une entrée par ligne, dans l'ordre):
- item: désignation de la pièce (ex: "PLAN VASQUE", "SEUIL")
- materiaux: matériau complet, sans le couper (ex: "TROPICAL FASHION K2")
- finition: Brut, Adoucie ou Polie ("Poli" s'écrit "Polie")
- longueur, largeur, epaisseur: en cm
- quantite: nombre de pièces (entier)
- qte: quantité de la ligne en m² ou m³

Surface ou volume:
- un code matériau terminé par une lettre suivie de chiffres (K2, K3) désigne une tranche: m2Item = qte, m3Item = null
- un code matériau terminé par une lettre seule (Q, PBQ) désigne un bloc: m3Item = qte, m2Item = null

confidence: ta confiance globale entre 0.0 et 1.0.
warnings: problèmes constatés (ARC illisible, client incertain, lignes incomplètes, délai absent...)."""

DEBIT_SHEET_TEXT_SUFFIX = """

Texte de la fiche:
---
{document_text}
---"""

# Upper bound on document text sent inline
MAX_TEXT_EXCERPT_CHARS = 30_000


def build_document_prompt() -> str:
    """User prompt sent alongside an inline PDF document."""
    return DEBIT_SHEET_EXTRACT_V1_USER


def build_text_prompt(document_text: str) -> str:
    """User prompt for providers that only accept text.

    Args:
        document_text: Extracted plain text, truncated to MAX_TEXT_EXCERPT_CHARS

    Returns:
        Prompt with the text excerpt embedded
    """
    excerpt = document_text[:MAX_TEXT_EXCERPT_CHARS]
    return DEBIT_SHEET_EXTRACT_V1_USER + DEBIT_SHEET_TEXT_SUFFIX.format(document_text=excerpt)
