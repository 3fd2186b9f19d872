def installer_display_name(business_name: str | None, owner_name: str | None) -> str:
    """Public name of an installer: the business name when set, else the owner's name."""
    if business_name and business_name.strip():
        return business_name.strip()
    if owner_name and owner_name.strip():
        return owner_name.strip()
    return "Instalator"
