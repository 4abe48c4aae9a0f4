"""
Admin dashboard routes: statistics, download management, duplicate phones, audit logs
"""
from flask import Blueprint, jsonify, request
from routes.admin.auth import admin_required
from models import db
from models.audit_log import AuditLog
from models.diagnosis import DiagnosisSession
from models.email_download import EmailDownload
from models.user import User
from utils.phone import mask_phone
from datetime import datetime, timedelta
from sqlalchemy import func

admin_dashboard_bp = Blueprint('admin_dashboard', __name__, url_prefix='/admin')

MAX_PAGE_SIZE = 100


def mask_email(email):
    """a***@example.com"""
    if not email or '@' not in email:
        return '[MASKED]'
    local, domain = email.split('@', 1)
    return f"{local[:1]}***@{domain}"


def mask_token(token):
    if not token or len(token) < 12:
        return '[MASKED]'
    return f"{token[:8]}...{token[-4:]}"


def _page_args():
    page = request.args.get('page', 1, type=int) or 1
    limit = request.args.get('limit', 20, type=int) or 20
    return max(page, 1), min(max(limit, 1), MAX_PAGE_SIZE)


@admin_dashboard_bp.route('/statistics')
@admin_required
def statistics():
    """Lead funnel statistics"""
    # Timezone-safe: use UTC for all date comparisons
    now = datetime.utcnow()
    today_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    month_start = today_start.replace(day=1)

    total_users = User.query.count()
    total_diagnoses = DiagnosisSession.query.count()
    total_downloads = EmailDownload.query.count()
    completed_downloads = EmailDownload.query.filter_by(is_downloaded=True).count()

    today_users = User.query.filter(User.created_at >= today_start).count()
    today_diagnoses = DiagnosisSession.query.filter(DiagnosisSession.created_at >= today_start).count()
    month_users = User.query.filter(User.created_at >= month_start).count()
    month_diagnoses = DiagnosisSession.query.filter(DiagnosisSession.created_at >= month_start).count()

    # New users per day for the last 7 days (oldest first)
    daily_users = []
    for days_ago in range(6, -1, -1):
        day_start = today_start - timedelta(days=days_ago)
        day_end = day_start + timedelta(days=1)
        count = User.query.filter(User.created_at >= day_start, User.created_at < day_end).count()
        daily_users.append({'date': day_start.date().isoformat(), 'count': count})

    recent_users = User.query.order_by(User.created_at.desc()).limit(10).all()
    recent_diagnoses = DiagnosisSession.query.order_by(DiagnosisSession.created_at.desc()).limit(10).all()

    return jsonify({
        'success': True,
        'data': {
            'totals': {
                'users': total_users,
                'diagnoses': total_diagnoses,
                'downloads': total_downloads,
                'completedDownloads': completed_downloads,
            },
            'today': {'users': today_users, 'diagnoses': today_diagnoses},
            'thisMonth': {'users': month_users, 'diagnoses': month_diagnoses},
            'dailyUsers': daily_users,
            'recentUsers': [{
                'id': u.id,
                'phoneNumber': mask_phone(u.phone_number),
                'createdAt': u.created_at.isoformat() if u.created_at else None,
                'lastVerifiedAt': u.last_verified_at.isoformat() if u.last_verified_at else None,
            } for u in recent_users],
            'recentDiagnoses': [{
                'id': d.id,
                'sessionId': d.session_id,
                'phoneNumber': mask_phone(d.phone_number),
                'createdAt': d.created_at.isoformat() if d.created_at else None,
            } for d in recent_diagnoses],
        },
    })


@admin_dashboard_bp.route('/downloads')
@admin_required
def downloads():
    """Email download list with filters: downloaded (true/false), email, phone"""
    page, limit = _page_args()
    query = EmailDownload.query

    downloaded = request.args.get('downloaded')
    if downloaded in ('true', 'false'):
        query = query.filter(EmailDownload.is_downloaded == (downloaded == 'true'))
    email = request.args.get('email', '').strip()
    if email:
        query = query.filter(EmailDownload.email.ilike(f"%{email}%"))
    phone = request.args.get('phone', '').strip()
    if phone:
        query = query.filter(EmailDownload.phone_number.like(f"%{phone}%"))

    total = query.count()
    rows = query.order_by(EmailDownload.created_at.desc()).offset((page - 1) * limit).limit(limit).all()

    total_all = EmailDownload.query.count()
    downloaded_all = EmailDownload.query.filter_by(is_downloaded=True).count()
    expired_pending = EmailDownload.query.filter(
        EmailDownload.is_downloaded.is_(False),
        EmailDownload.expires_at < datetime.utcnow()
    ).count()

    return jsonify({
        'success': True,
        'data': [{
            'id': d.id,
            'userId': d.user_id,
            'phoneNumber': mask_phone(d.phone_number),
            'email': mask_email(d.email),
            'downloadToken': mask_token(d.download_token),
            'isDownloaded': bool(d.is_downloaded),
            'downloadedAt': d.downloaded_at.isoformat() if d.downloaded_at else None,
            'expiresAt': d.expires_at.isoformat(),
            'createdAt': d.created_at.isoformat() if d.created_at else None,
        } for d in rows],
        'pagination': {
            'page': page,
            'limit': limit,
            'total': total,
            'totalPages': (total + limit - 1) // limit,
        },
        'stats': {
            'total': total_all,
            'downloaded': downloaded_all,
            'pending': total_all - downloaded_all,
            'expired': expired_pending,
            'downloadRate': round(downloaded_all / total_all * 100, 1) if total_all else 0,
        },
    })


@admin_dashboard_bp.route('/duplicate-phones')
@admin_required
def duplicate_phones():
    """Phones that submitted more than one diagnosis"""
    rows = db.session.query(
        DiagnosisSession.phone_number,
        func.count(DiagnosisSession.id).label('diagnosis_count'),
        func.min(DiagnosisSession.created_at).label('first_at'),
        func.max(DiagnosisSession.created_at).label('last_at'),
    ).group_by(DiagnosisSession.phone_number).having(
        func.count(DiagnosisSession.id) > 1
    ).order_by(func.count(DiagnosisSession.id).desc()).all()

    return jsonify({
        'success': True,
        'data': [{
            'phoneNumber': mask_phone(row.phone_number),
            'count': row.diagnosis_count,
            'firstDiagnosisAt': row.first_at.isoformat() if row.first_at else None,
            'lastDiagnosisAt': row.last_at.isoformat() if row.last_at else None,
        } for row in rows],
        'total': len(rows),
    })


@admin_dashboard_bp.route('/audit-logs')
@admin_required
def audit_logs():
    page, limit = _page_args()
    query = AuditLog.query
    event_type = request.args.get('event_type', '').strip()
    if event_type:
        query = query.filter_by(event_type=event_type)
    severity = request.args.get('severity', '').strip()
    if severity:
        query = query.filter_by(severity=severity)

    total = query.count()
    events = query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).offset((page - 1) * limit).limit(limit).all()
    return jsonify({
        'success': True,
        'data': [e.to_dict() for e in events],
        'pagination': {
            'page': page,
            'limit': limit,
            'total': total,
            'totalPages': (total + limit - 1) // limit,
        },
    })
