from ghproxy.proxy.route import router

__all__ = ["router"]
