"""
Seed data for tenants.
Four sellers covering every registry status.
"""

from decimal import Decimal

TENANTS = [
    {
        "business_name": "Kovai Crafts",
        "owner_name": "Meena Raghavan",
        "email": "meena@kovaicrafts.in",
        "phone": "9843012345",
        "address": {"street": "12 Race Course Road", "city": "Coimbatore", "state": "Tamil Nadu", "pincode": "641018"},
        "gst_number": "33AABCK1234M1Z5",
        "description": "Hand-painted frames and personalised gifts.",
        "status": "approved",
        "commission_rate": Decimal("10"),
    },
    {
        "business_name": "Madurai Memories",
        "owner_name": "Arun Pandian",
        "email": "arun@maduraimemories.in",
        "phone": "9894056789",
        "address": {"street": "4 West Masi Street", "city": "Madurai", "state": "Tamil Nadu", "pincode": "625001"},
        "description": "Photo mugs, cushions and keepsakes.",
        "status": "approved",
        "commission_rate": Decimal("12.5"),
    },
    {
        "business_name": "Chennai Gift Studio",
        "owner_name": "Lakshmi Narayan",
        "email": "lakshmi@chennaigifts.in",
        "phone": "9840098765",
        "address": {"city": "Chennai", "state": "Tamil Nadu", "pincode": "600017"},
        "status": "pending",
        "commission_rate": Decimal("10"),
    },
    {
        "business_name": "Salem Prints",
        "owner_name": "Karthik Subramani",
        "email": "karthik@salemprints.in",
        "phone": "9786543210",
        "address": {"city": "Salem", "state": "Tamil Nadu", "pincode": "636007"},
        "status": "suspended",
        "commission_rate": Decimal("8"),
    },
]
