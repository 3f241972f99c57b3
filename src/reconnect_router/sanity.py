# ─── Standard library imports ───
from dataclasses import dataclass

# ─── Project imports ───
from .logger import get_logger


# Define the logger once for the entire module
logger = get_logger("sanity")


@dataclass(frozen=True)
class EnvCapabilities:
    """
    Observed runtime capabilities derived at startup.

    These represent what the host is actually capable of doing,
    not what it is configured to do in theory.
    """
    interface_present: bool
    dhcp_client: str | None
    router_reachable: bool


def print_summary(config, policy) -> None:
    # --- Quick Summary Printout ---
    logger.info("===== Runtime Summary =====")
    logger.info(f"Router IP:                     {config.Network.ROUTER_IP}")
    logger.info(f"DNS check hosts:               {', '.join(config.Network.DNS_CHECK_HOSTS)}")
    logger.info(f"Interface:                     {config.Network.INTERFACE}")
    logger.info(f"Notification transport:        {config.Notify.TRANSPORT}")
    logger.info(f"Heartbeat enabled:             {config.Heartbeat.ENABLED}")
    for key, value in policy.summary().items():
        logger.info(f"{key + ':':<31}{value}")
    logger.info("==========================")

def run_self_test(resetter, prober, interface: str, router_ip: str) -> EnvCapabilities:
    """
    Non-fatal environment checks. Problems are logged as warnings; the
    watchdog keeps running since recovery may fix them.
    """
    logger.info("Running self-test...")

    interface_present = resetter.exists(interface)
    if not interface_present:
        logger.warning(
            f"Network interface '{interface}' not found. Script may not work correctly."
        )
        logger.warning("Available interfaces:")
        for name in resetter.list_interfaces():
            logger.warning(f" - {name}")

    dhcp_client = resetter.detect_dhcp_client()
    if dhcp_client is None:
        logger.warning("No DHCP client (dhclient or dhcpcd) found. Network restart may fail.")

    router_reachable = prober.probe(router_ip).reachable
    if not router_reachable:
        logger.warning(f"Cannot reach router at {router_ip}. Please verify router IP address.")

    logger.info("🧩 Self-test complete.")
    return EnvCapabilities(
        interface_present=interface_present,
        dhcp_client=dhcp_client,
        router_reachable=router_reachable,
    )
