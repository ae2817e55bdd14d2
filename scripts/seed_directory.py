"""
Seed the Location Map and a sample employee directory.

Usage:
    python scripts/seed_directory.py                 # Uses development DB
    python scripts/seed_directory.py --env prod      # Uses production DB
    python scripts/seed_directory.py --no-employees  # Location Map only

This script is idempotent - safe to run multiple times. Location rows are
matched on territory, employees on email.
"""

import argparse
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from salesflow import create_app
from salesflow.models import db
from salesflow.models.records import LocationNode
from salesflow.services import get_services


# ═══════════════════════════════════════════════════════════════
# LOCATION MAP - one row per leaf territory
# ═══════════════════════════════════════════════════════════════
LOCATIONS = [
    # Zone, District, Area, Territory, Bazaar, Upazilla, BD Territory, CRO Territory, Business Unit
    ("Khulna", "Jhenaidah", "Kushtia", "Kushtia-01", "Kushtia Bazar", "Kushtia Sadar", "BD1", "CRO1", "ACL"),
    ("Khulna", "Jhenaidah", "Kushtia", "Kushtia-02", "Bheramara Bazar", "Bheramara", "BD1", "CRO1", "ACL"),
    ("Khulna", "Jessore", "Jessore", "Jessore-01", "Boro Bazar", "Jessore Sadar", "BD2", "CRO2", "AIL"),
]

# ═══════════════════════════════════════════════════════════════
# SAMPLE EMPLOYEES - one per routing role
# ═══════════════════════════════════════════════════════════════
EMPLOYEES = [
    {"name": "Rahim Uddin", "role": "SR", "email": "sr.kushtia@example.com",
     "whatsapp_number": "01711000001", "territory": "Kushtia-01", "business_unit": "ACL"},
    {"name": "Karim Hossain", "role": "ASM", "email": "asm.kushtia@example.com",
     "whatsapp_number": "01711000002", "area": "Kushtia", "business_unit": "ACL"},
    {"name": "Nasir Ahmed", "role": "ZSM", "email": "zsm.jhenaidah@example.com",
     "whatsapp_number": "01711000003", "district": "Jhenaidah", "business_unit": "ACL"},
    {"name": "Farzana Akter", "role": "BDO", "email": "bdo.bd1@example.com",
     "whatsapp_number": "01711000004", "bd_territory": "BD1", "business_unit": "ACL"},
    {"name": "Sohel Rana", "role": "CRO", "email": "cro.cro1@example.com",
     "whatsapp_number": "01711000005", "cro_territory": "CRO1", "business_unit": "ACL"},
    {"name": "Mahbub Alam", "role": "BDI", "email": "bdi.acl@example.com",
     "whatsapp_number": "01711000006", "business_unit": "ACL"},
]


def seed(with_employees: bool = True):
    services = get_services()
    services.resolver.ensure_schema()
    services.directory.ensure_schema()

    known = {node.territory for node in services.resolver.nodes()}
    added_nodes = 0
    for zone, district, area, territory, bazaar, upazilla, bd, cro, bu in LOCATIONS:
        if territory in known:
            continue
        services.resolver.add_node(LocationNode(
            zone=zone, district=district, area=area, territory=territory, bazaar=bazaar,
            upazilla=upazilla, bd_territory=bd, cro_territory=cro, business_unit=bu,
        ))
        added_nodes += 1
    print(f"  Location Map: {added_nodes} row(s) added, {len(known)} already present")

    if not with_employees:
        return
    added = 0
    for data in EMPLOYEES:
        if services.directory.find_by_email(data["email"]):
            continue
        employee = services.directory.add_employee(data)
        print(f"  + {employee.id:<8} {employee.role:<4} {employee.name}")
        added += 1
    print(f"  Employees: {added} added")


def main():
    parser = argparse.ArgumentParser(description="Seed Location Map and sample employees")
    parser.add_argument("--env", default="development", choices=["development", "prod", "production"])
    parser.add_argument("--no-employees", action="store_true", help="Seed the Location Map only")
    args = parser.parse_args()

    env = "production" if args.env in ("prod", "production") else args.env
    app = create_app(env)
    with app.app_context():
        db.create_all()
        seed(with_employees=not args.no_employees)
    print("Done.")


if __name__ == "__main__":
    main()
