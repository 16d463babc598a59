# backend/app/cli/__main__.py
from __future__ import annotations

import argparse

from app.cli.seed_demo import seed_demo


def main() -> None:
    p = argparse.ArgumentParser(prog="python -m app.cli", description="Seed demo users and a verified listing.")
    p.add_argument("--admin-email", default="admin@demo.local")
    p.add_argument("--agent-email", default="agent@demo.local")
    p.add_argument("--buyer-email", default="buyer@demo.local")
    p.add_argument("--no-sample-property", action="store_true")
    args = p.parse_args()

    out = seed_demo(
        admin_email=args.admin_email,
        agent_email=args.agent_email,
        buyer_email=args.buyer_email,
        create_sample_property=(not args.no_sample_property),
    )
    print(
        {
            "ok": True,
            "admin_email": out.admin_email,
            "agent_email": out.agent_email,
            "buyer_email": out.buyer_email,
            "sample_property_id": out.property_id,
        }
    )


if __name__ == "__main__":
    main()
