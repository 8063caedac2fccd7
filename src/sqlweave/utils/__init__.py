from sqlweave.utils.decorators import traced

__all__ = ["traced"]
