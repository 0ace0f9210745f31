"""
Example: Basic CoSelPro usage
=============================

This example shows how to log in, reuse the cached token and query tables.
"""

from coselpro import CoSelPro, ConnectionContext, Credentials, GatewayClient
from coselpro.procurement import CrossesClient, XCompanyRequest


def example_explicit_login():
    """Log in with explicit credentials."""

    cred = Credentials("http://proliant:3000", "consult", "consult")

    with GatewayClient(cred.host) as client:
        api = CoSelPro.from_credentials(client, cred)
        print("Logged in as:", api.user_name)

        rows = (
            api.scoped("company")
            .select("company_id", "company")
            .ilike("company", "ti*")
            .order("company")
            .limit(20)
            .json()
        )
        print(f"Found {len(rows)} companies")

        # Extend validity; the previous session value is left as is
        renewed = api.renew()
        print("Token now expires at:", renewed.token.expire.isoformat())


def example_cached_connection():
    """Reuse the token cached by a previous run, prompting only when needed."""

    with ConnectionContext(base_url="http://proliant:3000", interactive=True) as conn:
        print("Session for:", conn.session.user_name)

        crosses = CrossesClient(conn)
        company = crosses.x_company(XCompanyRequest(company="ti"))
        if company is not None:
            print(company.company, company.reliability)


if __name__ == "__main__":
    print("=" * 60)
    print("Explicit login")
    print("=" * 60)
    # example_explicit_login()  # Uncomment with a reachable gateway

    print("\n" + "=" * 60)
    print("Cached connection")
    print("=" * 60)
    # example_cached_connection()  # Uncomment with a reachable gateway
