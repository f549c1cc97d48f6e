# gascert/config/company.py

"""
Default company identity.

These values seed the editable settings the first time the application
starts. After that the settings stored by the domain store win; templates and
PDFs read the live values through ``company_context``.
"""

COMPANY_NAME = "Revisiones Gas Pro"
COMPANY_ADDRESS = "Calle Principal 123"
COMPANY_PHONE = "900 123 456"
COMPANY_EMAIL = "info@revisionesgas.com"
COMPANY_LOGO = "https://placehold.co/200x80/2563eb/FFFFFF?text=Gas+Pro"

COMPANY_PROFILE = {
    "name": COMPANY_NAME,
    "address": COMPANY_ADDRESS,
    "phone": COMPANY_PHONE,
    "email": COMPANY_EMAIL,
    "logo": COMPANY_LOGO,
}


def company_context(company=None) -> dict:
    """
    Template context for the company letterhead.

    ``company`` is the live ``CompanyInfo`` from the settings; when missing
    the defaults above are used.
    """
    profile = dict(COMPANY_PROFILE)
    if company is not None:
        profile.update(
            name=company.name,
            address=company.address,
            phone=company.phone,
            email=company.email,
            logo=company.logo,
        )

    return {
        "COMPANY_NAME": profile["name"],
        "COMPANY_ADDRESS": profile["address"],
        "COMPANY_PHONE": profile["phone"],
        "COMPANY_EMAIL": profile["email"],
        "COMPANY_LOGO": profile["logo"],
        "COMPANY_PROFILE": profile,
    }
