"""
coselpro.procurement.crosses - Company cross-reference lookup
=============================================================

Looks up a manufacturer/supplier/customer company by name and returns its
qualification status and risk for each role.
"""

from __future__ import annotations

import logging
from typing import List, Optional

import requests
from pydantic import BaseModel, Field, ValidationError

from coselpro.core.errors import GatewayUpstreamError
from coselpro.procurement.base import ProcurementClient

logger = logging.getLogger("coselpro.procurement.crosses")

FUNCTION_XCOMPANY = "xcompany"


class XRisk(BaseModel):
    """Risk grading attached to a company role."""

    risk: Optional[str] = None
    symbol: Optional[str] = None
    risk_id: Optional[int] = None


class XCompany(BaseModel):
    """Company with its manufacturer, supplier and customer status."""

    company_id: int
    company: str
    man_status_id: Optional[int] = None
    man_status: Optional[str] = None
    man_risk: Optional[XRisk] = None
    sup_status_id: Optional[int] = None
    sup_status: Optional[str] = None
    sup_risk: Optional[XRisk] = None
    cst_status_id: Optional[int] = None
    cst_status: Optional[str] = None
    cst_risk: Optional[XRisk] = None
    reliability: float


class XCompanyRequest(BaseModel):
    """Request model for the company cross-reference lookup."""

    company: str = Field(
        description="Company name or name fragment",
        json_schema_extra={"example": "ti"},
    )
    division_ids: Optional[List[int]] = Field(
        default=None,
        description="Restrict to these divisions",
    )
    xcompany_type_ids: Optional[List[int]] = Field(
        default=None,
        description="Restrict to these cross-reference types",
    )


class CrossesClient(ProcurementClient):
    """
    Client for company cross-reference lookups.

    Examples
    --------
    >>> crosses = CrossesClient(api)
    >>> company = crosses.x_company(XCompanyRequest(company="ti"))
    >>> company.reliability if company else None
    """

    def x_company(self, request: XCompanyRequest) -> Optional[XCompany]:
        """
        Look up a company.

        Network failures, gateway errors and malformed answers are logged and
        yield None. An expired session raises ExpiredTokenError before any
        request is sent.
        """
        try:
            data = self.session.rpc(FUNCTION_XCOMPANY, request.model_dump())
        except GatewayUpstreamError as e:
            logger.error("REST Error from CoSelPro server. %s", e)
            return None
        except requests.RequestException as e:
            logger.error("While running xcompany query. %s", e)
            return None
        except ValueError as e:
            logger.error("Failed to extract CoSelPro response content. %s", e)
            return None

        if isinstance(data, list):
            if not data:
                return None
            data = data[0]
        try:
            return XCompany.model_validate(data)
        except ValidationError as e:
            logger.error("Incorrect server response format. %s", e)
            return None
