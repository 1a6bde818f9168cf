"""Fixed example payload offered by "load sample"."""

from __future__ import annotations

from captive_profiles.snapshot.models import (
    CaptivePortal,
    IntegrationSnapshot,
    LoginMethods,
    Radius,
    WalledGarden,
    WalledGardenMask,
    now_millis,
)


def sample_snapshot() -> IntegrationSnapshot:
    """Return a fresh copy of the sample snapshot."""
    return IntegrationSnapshot(
        operator="admin",
        model="Model-X100",
        firmware_version="1.0.0",
        timestamp=now_millis(),
        captive_portal=CaptivePortal(
            redirection_url="https://portal.example.com",
            login_url="https://portal.example.com/login",
            logout_url="https://portal.example.com/logout",
            query_string_parameters={
                "client_mac": "MAC",
                "client_ip": "IP",
            },
            notes="Sample captive portal configuration",
        ),
        radius=Radius(
            access_request="RADIUS Access-Request sample",
            accounting_start="RADIUS Accounting-Start sample",
            support_mac_authentication=True,
            support_roaming=False,
            notes="Sample RADIUS configuration",
        ),
        walled_garden=WalledGarden(
            mask=int(WalledGardenMask.BY_IP | WalledGardenMask.BY_DOMAIN),
            welcome_page=True,
        ),
        login_methods=LoginMethods(
            support_https=True,
            support_logout=True,
            support_mail_surf=False,
            support_sms_surf=False,
            support_social=True,
        ),
    )
