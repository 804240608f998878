# backend/rentledger/cli/__main__.py
from __future__ import annotations

import argparse

from rentledger.cli.seed_demo import seed_demo


def main() -> None:
    p = argparse.ArgumentParser(prog="python -m rentledger.cli")
    p.add_argument("--name", default="Demo Tenant")
    p.add_argument("--rent", type=float, default=12000.0)
    p.add_argument("--garbage", type=float, default=200.0)
    p.add_argument("--water", type=float, default=500.0)
    p.add_argument("--months-back", type=int, default=2)
    p.add_argument("--no-current-record", action="store_true")
    args = p.parse_args()

    out = seed_demo(
        full_name=args.name,
        monthly_rent=args.rent,
        garbage_bill=args.garbage,
        water_bill=args.water,
        months_back=args.months_back,
        create_current_record=(not args.no_current_record),
    )
    print(
        {
            "ok": True,
            "tenant_id": out.tenant_id,
            "full_name": out.full_name,
            "record_id": out.record_id,
        }
    )


if __name__ == "__main__":
    main()
