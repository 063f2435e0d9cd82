from .load_state_footer import LoadStateFooter

__all__ = ["LoadStateFooter"]
