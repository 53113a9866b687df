"""
Contract Notification Email Service
====================================
Reminder e-mails for the back-office.

Email Types:
- Deadline reminder (payment, rooming list, ... due soon or overdue)
- Release reminder (unsold allocation units about to go back to the supplier)

Recipients:
- Explicit recipients given by the caller, else the contracts team list
- CC: sales team list for release reminders
"""

import html
import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from datetime import datetime
import logging
from typing import Dict, List, Optional, Tuple

from utils.config import config, OUTBOUND_EMAIL_CONFIG
from utils.db import get_db_engine
from ..audit import AuditLogEntry, AuditLogData, write_audit_log
from ..common.formatters import format_date, format_money, format_days, format_number
from ..contracts.deadline_rules import days_until, is_overdue, penalty_amount
from ..allocations.release import release_recommendations

logger = logging.getLogger(__name__)

PRIORITIES = ('low', 'normal', 'high', 'urgent')

URGENCY_COLORS = {
    'critical': '#dc3545',
    'high': '#fd7e14',
    'medium': '#ffc107',
}


class ContractNotificationEmail:
    """Email service for contract deadlines and allocation releases"""

    def __init__(self):
        self.smtp_host = OUTBOUND_EMAIL_CONFIG.get("host", "smtp.gmail.com")
        self.smtp_port = int(OUTBOUND_EMAIL_CONFIG.get("port", 587))
        self.sender_email = OUTBOUND_EMAIL_CONFIG.get("sender") or ""
        self.sender_password = OUTBOUND_EMAIL_CONFIG.get("password", "")
        self.contracts_team = config.get_team_email("contracts_team")
        self.sales_team = config.get_team_email("sales_team")

    # ================================================================
    # MAIN EMAIL METHODS
    # ================================================================

    def send_deadline_reminder(
        self,
        deadline: Dict,
        contract: Dict,
        recipients: Optional[List[str]] = None
    ) -> Tuple[bool, str]:
        """Send reminder for one contract deadline"""
        try:
            to_list = self._resolve_recipients(recipients, self.contracts_team)
            if not to_list:
                return False, "No recipients"

            overdue = is_overdue(deadline)
            remaining = days_until(deadline.get('deadline_date'))
            deadline_type = str(deadline.get('deadline_type', 'deadline')).replace('_', ' ').title()
            contract_number = contract.get('contract_number', 'N/A')
            penalty = penalty_amount(deadline, contract.get('total_cost'))

            header_class = "header-red" if overdue else "header-blue"
            headline = "⏰ Deadline Overdue" if overdue else "📅 Deadline Reminder"
            subject = f"{headline} - {contract_number} | {deadline_type} {format_date(deadline.get('deadline_date'))}"

            penalty_row = ""
            if penalty:
                penalty_row = (
                    f"<tr><td class=\"label\">Penalty if missed:</td>"
                    f"<td><strong>{format_money(penalty, contract.get('currency'))}</strong></td></tr>"
                )

            html_content = f"""
            <!DOCTYPE html>
            <html>
            <head>{self._build_style()}</head>
            <body>
                <div class="header {header_class}">
                    <h1>{headline}</h1>
                    <p>Contract: <strong>{contract_number}</strong></p>
                </div>

                <div class="content">
                    <p>Hi <strong>Contracts Team</strong>,</p>
                    <p>The following contract deadline needs attention:</p>

                    <table class="info-table">
                        <tr><td class="label">Contract:</td><td>{html.escape(str(contract.get('contract_name') or contract_number))}</td></tr>
                        <tr><td class="label">Supplier:</td><td>{html.escape(str(contract.get('supplier_name') or 'N/A'))}</td></tr>
                        <tr><td class="label">Deadline:</td><td><strong>{deadline_type}</strong></td></tr>
                        <tr><td class="label">Due date:</td><td>{format_date(deadline.get('deadline_date'))}</td></tr>
                        <tr><td class="label">Time left:</td><td>{format_days(remaining)}</td></tr>
                        {penalty_row}
                    </table>

                    {self._notes_box(deadline.get('notes'))}

                    <div class="footer">
                        <p>Sent: {datetime.now().strftime('%d %b %Y %H:%M')}</p>
                    </div>
                </div>
            </body>
            </html>
            """

            return self._send_email(
                to_emails=to_list,
                cc_emails=[],
                reply_to=self.contracts_team or self.sender_email,
                subject=subject,
                html_content=html_content
            )

        except Exception as e:
            logger.error(f"Error sending deadline reminder: {e}")
            return False, str(e)

    def send_release_reminder(
        self,
        warning: Dict,
        org_id: int,
        user_id: int,
        recipients: Optional[List[str]] = None,
        message: str = "",
        priority: str = "normal"
    ) -> Tuple[bool, str]:
        """
        Send release reminder for one allocation warning.

        A sent reminder is recorded as a notification_sent audit entry on the
        allocation.
        """
        try:
            if priority not in PRIORITIES:
                return False, f"Unknown priority: {priority}"

            to_list = self._resolve_recipients(recipients, self.contracts_team)
            if not to_list:
                return False, "No recipients"

            urgency = warning.get('urgency') or 'medium'
            color = URGENCY_COLORS.get(urgency, '#0066cc')
            name = str(warning.get('allocation_name') or 'N/A')
            subject = (
                f"{'🚨' if urgency == 'critical' else '⚠️'} Release Reminder - {name} | "
                f"{format_days(warning.get('days_until_release'))}"
            )
            if priority in ('high', 'urgent'):
                subject = f"[{priority.upper()}] {subject}"

            actions = ''.join(f"<li>{r}</li>" for r in release_recommendations(warning))

            html_content = f"""
            <!DOCTYPE html>
            <html>
            <head>{self._build_style()}</head>
            <body>
                <div class="header header-orange">
                    <h1>⚠️ Allocation Release Approaching</h1>
                    <p>Allocation: <strong>{html.escape(name)}</strong></p>
                </div>

                <div class="content">
                    <table class="info-table">
                        <tr><td class="label">Contract:</td><td>{html.escape(warning.get('contract_name') or 'N/A')}</td></tr>
                        <tr><td class="label">Supplier:</td><td>{html.escape(warning.get('supplier_name') or 'N/A')}</td></tr>
                        <tr><td class="label">Product:</td><td>{html.escape(warning.get('product_name') or 'N/A')}</td></tr>
                        <tr><td class="label">Release date:</td><td><strong>{format_date(warning.get('release_date'))}</strong></td></tr>
                    </table>

                    <div class="change-box" style="border-left: 4px solid {color};">
                        <h3>{format_number(warning.get('available_quantity'))} of {format_number(warning.get('total_quantity'))} units unsold</h3>
                        <p class="change-amount">Potential loss: <strong>{format_money(warning.get('potential_loss'), warning.get('currency'))}</strong></p>
                    </div>

                    {self._notes_box(message, "Message")}

                    <h4>Recommended actions</h4>
                    <ul>{actions}</ul>

                    <div class="footer">
                        <p>Priority: <strong>{priority}</strong></p>
                        <p>Sent: {datetime.now().strftime('%d %b %Y %H:%M')}</p>
                    </div>
                </div>
            </body>
            </html>
            """

            cc_list = [self.sales_team] if self.sales_team and self.sales_team not in to_list else []
            success, result_message = self._send_email(
                to_emails=to_list,
                cc_emails=cc_list,
                reply_to=self.contracts_team or self.sender_email,
                subject=subject,
                html_content=html_content
            )

            if success:
                # The mail is already out, a failed audit write does not undo it
                try:
                    self._log_notification(warning, org_id, user_id, to_list + cc_list, message, priority)
                except Exception as e:
                    logger.error(f"❌ Release reminder for allocation {warning.get('id')} sent "
                                 f"but not recorded in audit log: {e}")

            return success, result_message

        except Exception as e:
            logger.error(f"Error sending release reminder: {e}")
            return False, str(e)

    # ================================================================
    # HELPERS
    # ================================================================

    def _resolve_recipients(self, recipients: Optional[List[str]], fallback: Optional[str]) -> List[str]:
        to_list = [r.strip() for r in (recipients or []) if r and r.strip()]
        if not to_list and fallback:
            to_list = [fallback]
        return to_list

    def _notes_box(self, text: Optional[str], title: str = "Notes") -> str:
        if not text:
            return ""
        return f"""
                    <div class="reason-box">
                        <h4>{title}:</h4>
                        <p>{html.escape(str(text))}</p>
                    </div>
        """

    def _log_notification(self, warning: Dict, org_id: int, user_id: int,
                          recipients: List[str], message: str, priority: str):
        engine = get_db_engine()
        with engine.begin() as conn:
            write_audit_log(conn, AuditLogEntry(
                org_id=org_id,
                user_id=user_id,
                entity_type='contract_allocation',
                entity_id=warning.get('id'),
                action='notification_sent',
                new_values={
                    'type': 'release_reminder',
                    'recipients': recipients,
                    'message': message,
                    'priority': priority,
                    'days_until_release': warning.get('days_until_release'),
                },
            ))
        AuditLogData.clear_cache()

    def _build_style(self) -> str:
        """Build common CSS styles"""
        return """
        <style>
            body { font-family: Arial, sans-serif; line-height: 1.6; color: #333; }
            .header { padding: 20px; color: white; text-align: center; }
            .header-blue { background: #0066cc; }
            .header-orange { background: #fd7e14; }
            .header-red { background: #dc3545; }
            .header h1 { margin: 0 0 10px 0; font-size: 24px; }
            .header p { margin: 0; opacity: 0.9; }
            .content { padding: 20px; }
            .info-table { margin: 15px 0; border-collapse: collapse; }
            .info-table td { padding: 8px 15px 8px 0; }
            .info-table .label { color: #666; min-width: 120px; }
            .change-box {
                background: #f8f9fa;
                padding: 15px;
                margin: 20px 0;
                border-radius: 4px;
            }
            .change-box h3 { margin: 0 0 10px 0; }
            .change-amount { margin-top: 10px; color: #666; }
            .reason-box {
                background: #e9ecef;
                padding: 15px;
                margin: 20px 0;
                border-radius: 4px;
            }
            .reason-box h4 { margin: 0 0 10px 0; }
            .reason-box p { margin: 0; }
            .footer {
                margin-top: 30px;
                padding-top: 15px;
                border-top: 1px solid #eee;
                font-size: 12px;
                color: #666;
            }
        </style>
        """

    def _send_email(
        self,
        to_emails: List[str],
        cc_emails: List[str],
        reply_to: str,
        subject: str,
        html_content: str
    ) -> Tuple[bool, str]:
        """Send email via SMTP"""
        try:
            if not config.is_feature_enabled("EMAIL_NOTIFICATIONS"):
                logger.warning("Email notifications disabled, skipping email")
                return False, "Email notifications disabled"

            if not self.sender_email or not self.sender_password:
                logger.warning("Email password not configured, skipping email")
                return False, "Email not configured"

            msg = MIMEMultipart('alternative')
            msg['Subject'] = subject
            msg['From'] = self.sender_email
            msg['To'] = ', '.join(to_emails)
            if cc_emails:
                msg['Cc'] = ', '.join(cc_emails)
            if reply_to:
                msg['Reply-To'] = reply_to

            msg.attach(MIMEText(html_content, 'html'))

            all_recipients = to_emails + (cc_emails or [])

            with smtplib.SMTP(self.smtp_host, self.smtp_port) as server:
                server.starttls()
                server.login(self.sender_email, self.sender_password)
                server.sendmail(self.sender_email, all_recipients, msg.as_string())

            logger.info(f"Email sent successfully to {', '.join(to_emails)}")
            return True, "Email sent successfully"

        except Exception as e:
            logger.error(f"Error sending email: {e}")
            return False, str(e)
