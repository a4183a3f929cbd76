"""
Prompt templates for the gold-location search.

The standard and unknown tier modes share one prompt skeleton and differ only
in the task wording and the output schema. The model must answer in French
and may only use the hydronyms enumerated from OpenStreetMap.
"""

from typing import Dict, List, Optional, Sequence

from models.gold_sites import Coordinates, PlaceFeature, TierMode

SYSTEM_ROLE = (
    "Tu es un expert en orpaillage et en géologie aurifère, spécialisé dans "
    "l'identification des cours d'eau aurifères en France. Tu réponds UNIQUEMENT "
    "avec un objet JSON valide, sans texte avant ou après."
)

STANDARD_TASK = """TÂCHE :
Identifie les cours d'eau (rivières, ruisseaux, torrents) au meilleur potentiel aurifère
autour de la localisation donnée. Classe-les en deux groupes :
- "mainSpots" : les 3 cours d'eau les plus prometteurs, documentés (BRGM, sites spécialisés, forums)
- "secondarySpots" : 3 à 5 cours d'eau secondaires (petits ruisseaux, torrents) plausibles"""

UNKNOWN_TASK = """TÂCHE :
Identifie 3 à 5 cours d'eau peu ou pas documentés pour l'orpaillage mais qui traversent des
formations géologiquement favorables à l'or (filons de quartz, failles, roches métamorphiques,
granites, zones de contact, minéraux indicateurs comme l'arsénopyrite ou la pyrite).
Évalue uniquement sur des critères géologiques. Pour chacun, propose des portions précises à
prospecter ("prospectionSpots")."""

STANDARD_SCHEMA = """{
  "mainSpots": [
    {
      "name": "Nom exact du cours d'eau, tel qu'il figure dans la liste autorisée",
      "type": "rivière | ruisseau | torrent",
      "coordinates": [43.213012, 2.349123],
      "distance": "12 km",
      "description": "Description détaillée du spot",
      "geology": "Contexte géologique (failles, quartz, roches)",
      "history": "Historique des découvertes et de l'orpaillage",
      "rating": 4,
      "sources": ["Référence précise 1", "Référence précise 2"],
      "hotspots": [
        {"location": "Lieu précis", "description": "Intérêt pour l'orpaillage", "source": "Source"}
      ],
      "goldOrigin": {
        "description": "Origine de l'or dans ce cours d'eau",
        "brgmData": "Données BRGM pertinentes (gîtes, filons)",
        "entryPoints": ["Point d'entrée de l'or"],
        "affluents": ["Affluent enrichissant"]
      },
      "referencedSpots": {
        "description": "Vue d'ensemble des spots connus",
        "locations": ["Spot mentionné"],
        "sources": ["Source de ces spots"]
      }
    }
  ],
  "secondarySpots": [],
  "hasMoreResults": true
}"""

UNKNOWN_SCHEMA = """{
  "unknownSpots": [
    {
      "name": "Nom exact du cours d'eau, tel qu'il figure dans la liste autorisée",
      "type": "rivière | ruisseau | torrent",
      "coordinates": [45.123456, 3.456789],
      "distance": "8 km",
      "description": "Description géologique avec références BRGM",
      "geology": "Formations traversées avec numéros de cartes",
      "rating": 3,
      "sources": ["Carte géologique BRGM n°XXX - Feuille de XXX"],
      "hotspots": [
        {"location": "Point d'intérêt", "description": "Explication géologique", "source": "Référence BRGM"}
      ],
      "goldOrigin": {
        "description": "Origine potentielle de l'or",
        "brgmData": "Données BRGM avec références",
        "entryPoints": ["Point d'entrée potentiel"],
        "affluents": ["Affluent intéressant"]
      },
      "prospectionSpots": [
        {
          "coordinates": [45.124001, 3.457002],
          "description": "Portion à prospecter",
          "geologicalFeatures": ["Caractéristique favorable"],
          "accessInfo": "Accès à cette portion",
          "priority": 1
        }
      ]
    }
  ]
}"""

OUTPUT_RULES = """RÈGLES DE SORTIE :
1. Réponds UNIQUEMENT avec le JSON, sans texte ni balises markdown
2. Guillemets doubles pour les chaînes ; nombres sans guillemets
3. "rating" est un entier de 1 à 5 ; "priority" est un entier de 1 (haute) à 3 (basse)
4. "coordinates" vaut [latitude, longitude] avec 6 décimales, placé sur le lit du cours d'eau
5. Cite des sources précises (URLs, numéros de cartes BRGM, indices miniers)
6. N'invente aucune donnée historique ou géologique ; si rien n'est documenté, renvoie des tableaux vides"""


def format_waterway_list(
    waterway_names: Sequence[str], locations: Optional[Dict[str, Coordinates]] = None
) -> str:
    locations = locations or {}
    lines = []
    for name in waterway_names:
        coordinates = locations.get(name)
        if coordinates:
            lines.append(f"- {name} [{coordinates[0]:.6f}, {coordinates[1]:.6f}]")
        else:
            lines.append(f"- {name}")
    return "\n".join(lines)


def format_evidence(waterway_names: Sequence[str], evidence: Dict[str, str]) -> str:
    blocks = []
    for name in waterway_names:
        blob = evidence.get(name, "")
        if blob:
            blocks.append(f"## {name}\n{blob}")
    return "\n\n".join(blocks)


def build_system_prompt(tier_mode: TierMode) -> str:
    if tier_mode == TierMode.UNKNOWN:
        task, schema = UNKNOWN_TASK, UNKNOWN_SCHEMA
    else:
        task, schema = STANDARD_TASK, STANDARD_SCHEMA

    return "\n\n".join(
        [
            SYSTEM_ROLE,
            task,
            "FORMAT DE RÉPONSE REQUIS (structure exacte) :\n" + schema,
            OUTPUT_RULES,
        ]
    )


def build_user_prompt(
    place_name: str,
    center: Coordinates,
    radius_km: float,
    tier_mode: TierMode,
    waterway_names: Sequence[str],
    waterway_locations: Optional[Dict[str, Coordinates]] = None,
    evidence: Optional[Dict[str, str]] = None,
    exclude_names: Sequence[str] = (),
    places: Optional[List[PlaceFeature]] = None,
) -> str:
    lat, lon = center
    parts = [
        f"Localisation : {place_name} [{lat:.6f}, {lon:.6f}], rayon de {radius_km:g} km.",
    ]

    if waterway_names:
        parts.append(
            "COURS D'EAU AUTORISÉS (relevés sur OpenStreetMap). Utilise UNIQUEMENT ces noms, "
            "orthographiés à l'identique ; n'invente aucun hydronyme :\n"
            + format_waterway_list(waterway_names, waterway_locations)
        )
    else:
        parts.append(
            "Aucun cours d'eau n'a pu être relevé automatiquement. Ne propose que des cours "
            "d'eau dont l'existence est certaine, avec leur nom officiel (IGN, SANDRE)."
        )

    if exclude_names:
        parts.append(
            "COURS D'EAU DÉJÀ PROPOSÉS (À EXCLURE, ne les propose pas à nouveau) :\n"
            + "\n".join(f"- {name}" for name in exclude_names)
        )
        parts.append(
            'Indique "hasMoreResults": false s\'il ne reste aucun autre cours d\'eau pertinent.'
        )

    if places:
        place_names = ", ".join(sorted({place.name for place in places})[:60])
        parts.append(f"Lieux-dits et villages de la zone (pour situer les spots) : {place_names}")

    evidence_text = format_evidence(waterway_names, evidence or {})
    if evidence_text:
        parts.append("DONNÉES DES SOURCES PAR COURS D'EAU :\n" + evidence_text)

    if tier_mode == TierMode.UNKNOWN:
        parts.append(
            "Propose 3 à 5 cours d'eau traversant des formations favorables à l'or, "
            "avec leurs portions à prospecter."
        )
    else:
        parts.append(
            "Propose les 3 cours d'eau principaux les plus prometteurs puis 3 à 5 cours "
            "d'eau secondaires, avec leurs points d'intérêt (hotspots)."
        )

    return "\n\n".join(parts)
