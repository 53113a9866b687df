# utils/auth.py

import streamlit as st
import hashlib
import secrets
from datetime import datetime, timedelta
from typing import Dict, Optional, Tuple
import logging
from sqlalchemy import text
from .db import get_db_engine
from .config import config

logger = logging.getLogger(__name__)

INVALID_LOGIN = {"error": "Invalid username or password"}

# session_state key -> user info key
SESSION_FIELDS = {
    'user_id': 'id',
    'org_id': 'org_id',
    'username': 'username',
    'user_email': 'email',
    'user_role': 'role',
    'user_fullname': 'full_name',
    'login_time': 'login_time',
}

AUTH_KEYS = ['authenticated', 'user', *SESSION_FIELDS]

USER_QUERY = text("""
    SELECT
        u.id, u.org_id, u.username, u.password_hash, u.password_salt,
        u.email, u.role, u.full_name, u.is_active,
        o.name AS org_name
    FROM users u
    LEFT JOIN organizations o ON u.org_id = o.id
    WHERE u.username = :username
    AND u.delete_flag = 0
""")


class AuthManager:
    """Login and session handling; every session is bound to one organization"""

    def __init__(self):
        self.session_timeout = timedelta(hours=config.get_app_setting('SESSION_TIMEOUT_HOURS', 8))

    def hash_password(self, password: str, salt: str = None) -> Tuple[str, str]:
        """sha256(password + salt), new random salt when none is given"""
        salt = salt or secrets.token_hex(32)
        return hashlib.sha256((password + salt).encode()).hexdigest(), salt

    def verify_password(self, password: str, stored_hash: str, salt: str) -> bool:
        pwd_hash, _ = self.hash_password(password, salt)
        return secrets.compare_digest(pwd_hash, stored_hash or '')

    # ==================== LOGIN ====================

    def authenticate(self, username: str, password: str) -> Tuple[bool, Optional[Dict]]:
        """Check credentials; returns (True, user info) or (False, {'error': ...})"""
        try:
            user = self._load_user(username)

            if not user:
                return False, dict(INVALID_LOGIN)

            if not user['is_active']:
                return False, {"error": "Account is inactive. Please contact administrator."}

            if not self.verify_password(password, user['password_hash'], user['password_salt']):
                logger.warning(f"Failed login for {username}")
                return False, dict(INVALID_LOGIN)

            self._touch_last_login(user['id'])

            return True, {
                'id': user['id'],
                'org_id': user['org_id'],
                'org_name': user.get('org_name'),
                'username': user['username'],
                'email': user['email'],
                'role': user['role'],
                'full_name': user['full_name'] or user['username'],
                'login_time': datetime.now()
            }

        except Exception as e:
            logger.error(f"Authentication error: {e}")
            return False, {"error": "Authentication failed. Please try again."}

    def _load_user(self, username: str) -> Optional[Dict]:
        with get_db_engine().connect() as conn:
            row = conn.execute(USER_QUERY, {'username': username}).fetchone()
        return dict(row._mapping) if row else None

    def _touch_last_login(self, user_id: int):
        # Login still succeeds when this fails
        try:
            with get_db_engine().begin() as conn:
                conn.execute(
                    text("UPDATE users SET last_login = CURRENT_TIMESTAMP WHERE id = :user_id"),
                    {'user_id': user_id}
                )
        except Exception as e:
            logger.warning(f"Could not update last_login: {e}")

    # ==================== SESSION ====================

    def login(self, user_info: Dict):
        """Store the authenticated user in session state"""
        st.session_state.authenticated = True
        for session_key, info_key in SESSION_FIELDS.items():
            st.session_state[session_key] = user_info.get(info_key)

        # Pages read the user dict
        st.session_state.user = {
            key: user_info.get(key)
            for key in ('id', 'org_id', 'org_name', 'username', 'email', 'role', 'full_name')
        }

        logger.info(
            f"🔓 {user_info['username']} (ID: {user_info['id']}, org {user_info['org_id']}) logged in"
        )

    def check_session(self) -> bool:
        """Valid when logged in, bound to a user and organization, and not timed out"""
        if not st.session_state.get('authenticated'):
            return False

        if not st.session_state.get('user_id') or not st.session_state.get('org_id'):
            logger.warning("Session has no user_id/org_id")
            return False

        login_time = st.session_state.get('login_time')
        if login_time and datetime.now() - login_time > self.session_timeout:
            logger.info(f"Session timeout for {st.session_state.get('username', 'unknown')}")
            self.logout()
            return False

        return True

    def logout(self):
        username = st.session_state.get('username', 'Unknown')

        for key in AUTH_KEYS:
            st.session_state.pop(key, None)

        # Cached queries are keyed by org, drop them with the session
        st.cache_data.clear()

        logger.info(f"🔒 {username} logged out")

    def require_auth(self):
        """Stop the page unless a valid session exists"""
        if not self.check_session():
            st.warning("⚠️ Please login to access this page")
            st.stop()
            return False
        return True

    # ==================== CURRENT USER ====================

    def get_current_user_id(self) -> Optional[int]:
        return self._session_int('user_id')

    def get_current_org_id(self) -> Optional[int]:
        return self._session_int('org_id')

    def _session_int(self, key: str) -> Optional[int]:
        value = st.session_state.get(key)
        if not value:
            logger.error(f"No {key} found in session state")
            return None
        try:
            return int(value)
        except (ValueError, TypeError) as e:
            logger.error(f"Invalid {key} format: {value}, error: {e}")
            return None

    def get_user_display_name(self) -> str:
        return st.session_state.get('user_fullname') or st.session_state.get('username', 'User')
