"""
Supplier Contract Back-Office - Main Entry Point
Login, then a hub with the organization's headline numbers and module links
"""
import streamlit as st
from utils.auth import AuthManager
from utils.config import config
import logging

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Page config
st.set_page_config(
    page_title="Supplier Contracts",
    page_icon="📄",
    layout="wide",
    initial_sidebar_state="expanded"
)

auth = AuthManager()

# ==================== CUSTOM STYLES ====================

st.markdown("""
<style>
    .module-card {
        border-radius: 12px;
        padding: 18px;
        color: white;
        text-align: center;
        height: 150px;
        margin-bottom: 8px;
    }
    .module-card.blue { background: linear-gradient(135deg, #667eea 0%, #764ba2 100%); }
    .module-card.green { background: linear-gradient(135deg, #11998e 0%, #38ef7d 100%); }
    .module-card.orange { background: linear-gradient(135deg, #f7971e 0%, #ffd200 100%); }
    .module-card h3 { margin: 0 0 6px 0; font-size: 1.25rem; }
    .module-card p { margin: 0; font-size: 0.9rem; opacity: 0.9; }
    .module-icon { font-size: 2rem; margin-bottom: 6px; }
</style>
""", unsafe_allow_html=True)

MODULES = [
    ("📊", "Dashboard", "Key metrics, release warnings, deadlines", "blue", "pages/1_📊_Dashboard.py"),
    ("📄", "Contracts", "Supplier contracts, deadlines and history", "green", "pages/2_📄_Contracts.py"),
    ("📦", "Allocations", "Daily buckets, allotments and inventory", "orange", "pages/3_📦_Allocations.py"),
    ("💶", "Supplier Rates", "Rate plans, occupancy prices, seasons", "blue", "pages/4_💶_Supplier_Rates.py"),
    ("🏊", "Allocation Pools", "Shared capacity across variants", "green", "pages/5_🏊_Allocation_Pools.py"),
    ("🕵️", "Audit Log", "Who changed what, and when", "orange", "pages/6_🕵️_Audit_Log.py"),
]


# ==================== LOGIN PAGE ====================

def show_login_page():
    _, col, _ = st.columns([1, 1.5, 1])

    with col:
        st.markdown("## 📄 Supplier Contracts")
        st.caption("Contracts, allocations and rates back-office")

        with st.form("login_form"):
            username = st.text_input("Username", key="login_username")
            password = st.text_input("Password", type="password", key="login_password")
            submit = st.form_submit_button("Login", type="primary", use_container_width=True)

        if submit:
            if not (username and password):
                st.warning("⚠️ Please enter username and password")
                return

            success, result = auth.authenticate(username.strip(), password)
            if success:
                auth.login(result)
                st.rerun()
            else:
                st.error(f"❌ {result.get('error', 'Invalid username or password')}")

        st.caption(f"v1.0.0 | {'☁️ Cloud' if config.is_cloud else '💻 Local'}")


# ==================== HUB PAGE ====================

def render_status_strip(org_id: int):
    """Three numbers that usually need action today"""
    from utils.dashboard import DashboardData

    metrics = DashboardData().get_key_metrics(org_id)
    col1, col2, col3 = st.columns(3)
    col1.metric("Active contracts", metrics['active_contracts'],
                delta=f"{metrics['expiring_contracts']} expiring" if metrics['expiring_contracts'] else None,
                delta_color="inverse")
    col2.metric("Critical releases", metrics['critical_releases'],
                help=f"Out of {metrics['at_risk_allocations']} allocation(s) releasing within "
                     f"{config.get_app_setting('RELEASE_WARNING_DAYS', 30)} days")
    col3.metric("Overdue deadlines", metrics['overdue_deadlines'],
                help=f"{metrics['pending_deadlines']} pending in total")


def show_hub_page():
    user = st.session_state.get('user', {})
    display_name = auth.get_user_display_name()

    with st.sidebar:
        st.markdown(f"### 👤 {display_name}")
        st.caption(f"{user.get('org_name') or 'Organization'} · {user.get('role', 'user')}")
        st.markdown("---")

        if st.button("🚪 Logout", use_container_width=True):
            auth.logout()
            st.rerun()

    st.title(f"👋 Welcome, {display_name}")
    if user.get('org_name'):
        st.caption(user['org_name'])

    render_status_strip(auth.get_current_org_id())
    st.markdown("---")

    for row_start in range(0, len(MODULES), 3):
        cols = st.columns(3)
        for col, (icon, title, description, color, page) in zip(cols, MODULES[row_start:row_start + 3]):
            with col:
                st.markdown(f"""
                <div class="module-card {color}">
                    <div class="module-icon">{icon}</div>
                    <h3>{title}</h3>
                    <p>{description}</p>
                </div>
                """, unsafe_allow_html=True)

                if st.button(f"Open {title}", key=f"btn_{title}", use_container_width=True):
                    st.switch_page(page)


# ==================== MAIN ====================

def main():
    if auth.check_session():
        show_hub_page()
    else:
        show_login_page()


if __name__ == "__main__":
    main()
