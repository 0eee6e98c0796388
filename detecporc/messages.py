"""User-facing message catalog.

The reference deployment speaks French; `Settings.locale` picks the catalog.
Unknown locales fall back to French, unknown keys to the generic server error.
"""
from typing import Dict

DEFAULT_LOCALE = "fr"

CATALOGS: Dict[str, Dict[str, str]] = {
    "fr": {
        "required_fields": "Nom, latitude et longitude sont obligatoires.",
        "invalid_request": "Requete invalide.",
        "invalid_id": "Identifiant invalide.",
        "point_not_found": "Point introuvable.",
        "suggestion_not_found": "Proposition introuvable.",
        "unauthorized": "Non autorise.",
        "invalid_credentials": "Identifiants invalides.",
        "storage": "Erreur serveur.",
        "payload_too_large": "Requete trop volumineuse.",
        "incomplete_position": "Latitude et longitude doivent etre fournies ensemble.",
        "loading": "Chargement des points de vente...",
        "load_failed": "Impossible de charger les points. Reessaie plus tard.",
        "locating": "Recherche de la position...",
        "located": "Localisation active",
        "no_position": "Active la localisation pour plus de precision.",
        "geo_denied": "Acces refuse a la localisation.",
        "geo_unavailable": "Position introuvable.",
        "geo_error": "Erreur de localisation.",
        "no_results": "Aucun resultat avec ces filtres.",
    },
    "en": {
        "required_fields": "Name, latitude and longitude are required.",
        "invalid_request": "Invalid request.",
        "invalid_id": "Invalid identifier.",
        "point_not_found": "Point not found.",
        "suggestion_not_found": "Suggestion not found.",
        "unauthorized": "Unauthorized.",
        "invalid_credentials": "Invalid credentials.",
        "storage": "Server error.",
        "payload_too_large": "Request body too large.",
        "incomplete_position": "Latitude and longitude must be given together.",
        "loading": "Loading points of sale...",
        "load_failed": "Could not load points. Try again later.",
        "locating": "Looking up your position...",
        "located": "Location active",
        "no_position": "Enable location for better results.",
        "geo_denied": "Location access denied.",
        "geo_unavailable": "Position unavailable.",
        "geo_error": "Location error.",
        "no_results": "No results for these filters.",
    },
}


def get_message(key: str, locale: str = DEFAULT_LOCALE) -> str:
    catalog = CATALOGS.get(locale, CATALOGS[DEFAULT_LOCALE])
    return catalog.get(key, catalog["storage"])
