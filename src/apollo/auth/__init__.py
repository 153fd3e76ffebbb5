from apollo.auth.dependencies import get_client_ip, get_config, set_config, verify_caller

__all__ = ["get_client_ip", "get_config", "set_config", "verify_caller"]
