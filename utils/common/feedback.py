"""
Turn OperationResult into Streamlit feedback.
"""

import streamlit as st

from .results import OperationResult


def show_result(result: OperationResult, rerun: bool = False) -> bool:
    """
    Toast on success, error box with details on failure.

    Warnings attached to a successful result are shown too. Returns
    result.success so callers can close their forms.
    """
    if result.success:
        st.toast(f"✅ {result.message}")
        for warning in result.data.get('warnings', []) or []:
            st.warning(f"⚠️ {warning}")
        if rerun:
            st.rerun()
        return True

    st.toast(f"❌ Operation failed: {result.message}")
    st.error(f"❌ {result.message}")
    for error in result.errors:
        st.caption(f"• {error}")
    return False
