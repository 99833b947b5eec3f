"""
Script de chargement du catalogue de partenaires.

Lit un fichier JSON de partenaires (réductions incluses) et l'écrit dans la collection `partners`
du magasin Redis configuré (`--redis-url` ou `REDIS_URL`). Chaque partenaire est écrit sous son
identifiant: relancer le script remplace les partenaires existants.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Permet l'exécution du script en direct (python scripts/seed_partners.py)
SYS_ROOT = Path(__file__).resolve().parents[1]
if str(SYS_ROOT) not in sys.path:
    sys.path.append(str(SYS_ROOT))

from petcare.core.settings import get_settings  # noqa: E402
from petcare.infra.partners_repo import (  # noqa: E402
    DEFAULT_PARTNERS_PATH,
    JSONPartnersRepository,
)
from petcare.infra.store.redis_store import RedisDocumentStore  # noqa: E402


def main(argv: list[str] | None = None) -> int:
    """Point d'entrée: lit le JSON et écrit les partenaires."""
    parser = argparse.ArgumentParser(description="Chargement des partenaires dans le magasin")
    parser.add_argument(
        "--path",
        type=str,
        default=DEFAULT_PARTNERS_PATH,
        help="Chemin du fichier JSON de partenaires",
    )
    parser.add_argument("--redis-url", type=str, default=None, help="URL Redis cible")
    args = parser.parse_args(argv)

    url = args.redis_url or get_settings().REDIS_URL
    if not url:
        print("[seed] REDIS_URL manquant (--redis-url ou variable d'environnement)")
        return 1
    repo = JSONPartnersRepository(args.path)
    n = repo.seed(RedisDocumentStore(url))
    print(f"[seed] partenaires écrits: {n} depuis {args.path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
