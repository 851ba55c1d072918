"""Prompt text for the drawing analysis model."""

from __future__ import annotations

ANALYSIS_PROMPT = """Jesteś ekspertem stolarskim. Analizujesz rysunek techniczny zabudowy meblowej.

POMIŃ CAŁKOWICIE:
- drzwi budowlane (przy krawędzi rysunku, z łukiem otwarcia, pełna wysokość ~2100 mm)
- okna i szprosy
- plecy (HDF)
- okucia (zawiasy, prowadnice, uchwyty) - system dolicza je sam

ZWRACAJ CAŁE MODUŁY, NIE FORMATKI:
1. Szafki dolne: "Szafka Dolna <szerokość>" lub "Szafka Zlew <szerokość>".
2. Szafki górne: "Szafka Górna <szerokość>", nadstawki: "Nadstawka <szerokość>".
3. Słupki: "Słupek <typ> <szerokość>" (np. "Słupek Piekarnik 600", "Słupek Cargo 400").
4. Zmywarka: "Zmywarka 600" (wyceniany jest tylko front).
5. Szuflady: "Szafka Dolna <szerokość> Szuflady" - jedna szafka z szufladami to qty 1.
6. Blaty, cokoły i blendy jako osobne elementy.

Każdy moduł oznacz identyfikatorem po " - " (np. "Szafka Dolna 600 - D60_1").
Wymiary podawaj w milimetrach jako liczby (bez działań typu 500-36).
Standardowe głębokości: dolne 510 mm, górne 340 mm, słupki 560 mm.

"box_2d" to [ymin, xmin, ymax, xmax] w skali 0-1000 i obejmuje cały mebel.

FORMAT ODPOWIEDZI (tylko JSON):
[
  {
    "sku": "NIEZNANY",
    "elements": [
      {"name": "Szafka Dolna 600 - D60_1", "width": 600, "height": 720, "qty": 1, "box_2d": [500, 100, 700, 300]},
      {"name": "Zmywarka 600 - ZM_1", "width": 600, "height": 720, "qty": 1, "box_2d": [500, 300, 700, 400]}
    ]
  }
]
"""

DESCRIPTION_HEADER = "OPIS PROJEKTU OD UŻYTKOWNIKA (klucz do zrozumienia rysunku):"


def build_analysis_prompt(description: str | None = None) -> str:
    if description and description.strip():
        return f"{DESCRIPTION_HEADER}\n{description.strip()}\n\n{ANALYSIS_PROMPT}"
    return ANALYSIS_PROMPT
