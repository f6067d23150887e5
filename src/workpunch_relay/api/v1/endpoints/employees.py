"""Employee punch summaries read back from Salesforce."""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Query

from workpunch_relay.services.reports import summarize_employees

from ..dependencies import CredentialStoreDep, GatewayFactoryDep

router = APIRouter(tags=["employees"])


@router.get("/employees")
async def list_employees(
    credentials: CredentialStoreDep,
    gateway_factory: GatewayFactoryDep,
    organization_code: Annotated[str | None, Query(alias="organizationCode")] = None,
    company_domain: Annotated[str | None, Query(alias="companyDomain")] = None,
) -> list[dict[str, Any]]:
    """Return every employee's clock records and remote / in-office hours.

    When ``companyDomain`` is given it must match the connected company.
    """
    credential = credentials.get_credentials(organization_code, company_domain=company_domain)
    async with gateway_factory(credential) as gateway:
        records = await gateway.list_punch_records()

    summaries = summarize_employees(records, organization_code=organization_code)
    return [summary.to_payload() for summary in summaries]
