"""
coselpro.procurement - CoSelPro domain functions
================================================

- ProcurementClient: base class for clients built on a session
- CrossesClient: company cross-reference lookup (``xcompany``)

"""

from coselpro.procurement.base import ProcurementClient
from coselpro.procurement.crosses import (
    CrossesClient,
    XCompany,
    XCompanyRequest,
    XRisk,
)

__all__ = [
    "ProcurementClient",
    "CrossesClient",
    "XCompany",
    "XCompanyRequest",
    "XRisk",
]
