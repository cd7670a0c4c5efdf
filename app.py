"""
app.py — PathExplorer Matching Service
Flask web application, a thin layer over the matching, CV and analytics engines.
"""

import io
import json
import logging
import os
import re
import time
from datetime import datetime

import pandas as pd
from flask import Flask, request, jsonify, send_file
from flask_cors import CORS
from werkzeug.exceptions import RequestEntityTooLarge
from werkzeug.utils import secure_filename

from ai_client import api_key_configured
from analytics import dashboard_summary, build_timeline
from assignment import auto_assign, find_conflicts
from config import (
    LOG_LEVEL, PORT, REPORTS_DIR, MAX_UPLOAD_MB, WEIGHT_PROFILES,
    EMBEDDING_MODEL, CV_CHAT_MODEL,
)
from cv_parser import parse_cv, CVParseError
from embeddings import get_embedding_service
from scoring import get_matches, match_roles, MatchingInputError

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

# ─────────────────────────────────────────────────────────────────────────────
app = Flask(__name__)
app.config['REPORTS_FOLDER'] = REPORTS_DIR
app.config['MAX_CONTENT_LENGTH'] = MAX_UPLOAD_MB * 1024 * 1024
CORS(app)

_REPORT_ID_RE = re.compile(r'^[A-Za-z0-9_]+$')


@app.after_request
def log_request(resp):
    logger.info("%s %s -> %s", request.method, request.path, resp.status_code)
    return resp


@app.errorhandler(RequestEntityTooLarge)
def too_large(e):
    return jsonify({'success': False, 'error': f'File too large (max {MAX_UPLOAD_MB} MB)'}), 413


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise MatchingInputError("Request body must be a JSON object")
    return data


def _json_field(name: str) -> list:
    """A multipart form field that carries a JSON array."""
    raw = request.form.get(name)
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        raise MatchingInputError(f"{name} must be a JSON array")
    if not isinstance(value, list):
        raise MatchingInputError(f"{name} must be a JSON array")
    return value


def _records(data: dict, name: str) -> list:
    """A body field holding a list of row objects; missing gives []."""
    value = data.get(name) or []
    if not isinstance(value, list) or not all(isinstance(row, dict) for row in value):
        raise MatchingInputError(f"{name} must be a list of objects")
    return value


def _min_score(value) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        raise MatchingInputError("minScore must be a number")


# ── Reports ───────────────────────────────────────────────────────────────────
def _save_report(result: dict, role: dict) -> str:
    folder = app.config['REPORTS_FOLDER']
    os.makedirs(folder, exist_ok=True)
    report_id = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
    with open(os.path.join(folder, f'report_{report_id}.json'), 'w') as rf:
        json.dump({
            "timestamp":   datetime.now().isoformat(),
            "role":        result.get("role"),
            "description": (role.get("description") or "")[:500],
            "weights":     result.get("weights"),
            "matches":     result.get("matches"),
        }, rf, indent=2)
    return report_id


# ── Routes ────────────────────────────────────────────────────────────────────
@app.route('/getMatches', methods=['POST'])
def get_matches_route():
    try:
        data = _json_body()
        role = data.get('role')
        result = get_matches(
            role,
            data.get('employees'),
            skill_map=data.get('skillMap') or {},
            service=get_embedding_service(),
            weights=data.get('weights'),
            profile=data.get('profile'),
        )
        result['reportId'] = _save_report(result, role)
        return jsonify(result)
    except MatchingInputError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.exception("/getMatches failed")
        return jsonify({'error': f'Server error: {str(e)}'}), 500


@app.route('/api/getEmbedding', methods=['POST'])
def get_embedding_route():
    try:
        data = _json_body()
        service = get_embedding_service()

        if 'texts' in data:
            texts = data.get('texts')
            if not isinstance(texts, list) or not texts or not all(isinstance(t, str) for t in texts):
                return jsonify({'error': 'texts must be a non-empty list of strings'}), 400
            return jsonify({'embeddings': service.get_batch_embeddings(texts),
                            'model': service.model})

        text = data.get('text')
        if not isinstance(text, str) or not text.strip():
            return jsonify({'error': 'No text provided'}), 400
        embedding = service.get_embedding(text)
        return jsonify({'embedding': embedding, 'model': service.model,
                        'dimensions': len(embedding)})
    except MatchingInputError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.exception("/api/getEmbedding failed")
        return jsonify({'error': f'Server error: {str(e)}'}), 500


@app.route('/api/cv/parse', methods=['POST'])
def parse_cv_route():
    try:
        f = request.files.get('file')
        if f is None or not f.filename:
            return jsonify({'success': False, 'error': 'No file provided. Field name must be "file".'}), 400

        available_skills = _json_field('availableSkills')
        available_roles = _json_field('availableRoles')
        logger.info("CV received: %s (%s), %d skills, %d roles",
                    f.filename, f.mimetype, len(available_skills), len(available_roles))

        data = f.read()
        start = time.perf_counter()
        parsed = parse_cv(data, secure_filename(f.filename) or f.filename, f.mimetype,
                          available_skills, available_roles)

        return jsonify({
            'success': True,
            'data': parsed,
            'meta': {
                'fileName':       f.filename,
                'fileSize':       len(data),
                'mimeType':       f.mimetype,
                'processingTime': round(time.perf_counter() - start, 3),
            },
        })
    except (CVParseError, MatchingInputError) as e:
        return jsonify({'success': False, 'error': str(e)}), 400
    except RequestEntityTooLarge:
        raise
    except Exception as e:
        logger.exception("/api/cv/parse failed")
        return jsonify({'success': False, 'error': f'Server error: {str(e)}'}), 500


@app.route('/api/assignments/auto', methods=['POST'])
def auto_assign_route():
    try:
        data = _json_body()
        roles = data.get('roles')
        results = match_roles(
            roles,
            data.get('employees'),
            skill_map=data.get('skillMap') or {},
            service=get_embedding_service(),
            weights=data.get('weights'),
            profile=data.get('profile'),
        )
        plan = auto_assign(
            [{"role": role, "matches": r["matches"]} for role, r in zip(roles, results)],
            taken=data.get('assignedEmployeeIds') or [],
            min_score=_min_score(data.get('minScore', 0)),
        )
        plan['weights'] = {rk['roleKey']: r['weights'] for rk, r in zip(plan['assignments'], results)}
        return jsonify(plan)
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.exception("/api/assignments/auto failed")
        return jsonify({'error': f'Server error: {str(e)}'}), 500


@app.route('/api/assignments/validate', methods=['POST'])
def validate_assignments_route():
    try:
        data = _json_body()
        assignments = data.get('assignments')
        if not isinstance(assignments, list):
            return jsonify({'error': 'assignments must be a list'}), 400
        conflicts = find_conflicts(assignments, taken=data.get('assignedEmployeeIds') or [])
        return jsonify({'valid': not conflicts, 'conflicts': conflicts})
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.exception("/api/assignments/validate failed")
        return jsonify({'error': f'Server error: {str(e)}'}), 500


@app.route('/api/analytics/summary', methods=['POST'])
def analytics_summary_route():
    try:
        data = _json_body()
        return jsonify(dashboard_summary(
            _records(data, 'users'),
            _records(data, 'projects'),
            _records(data, 'userRoles'),
            _records(data, 'userCertifications'),
        ))
    except MatchingInputError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.exception("/api/analytics/summary failed")
        return jsonify({'error': f'Server error: {str(e)}'}), 500


@app.route('/api/timeline', methods=['POST'])
def timeline_route():
    try:
        data = _json_body()
        items = build_timeline(_records(data, 'projects'), _records(data, 'certifications'))
        return jsonify({'items': items, 'total': len(items)})
    except MatchingInputError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.exception("/api/timeline failed")
        return jsonify({'error': f'Server error: {str(e)}'}), 500


@app.route('/download/<report_id>')
def download(report_id):
    if not _REPORT_ID_RE.match(report_id):
        return "Report not found", 404
    path = os.path.join(app.config['REPORTS_FOLDER'], f'report_{report_id}.json')
    if not os.path.exists(path):
        return "Report not found", 404

    with open(path) as f:
        data = json.load(f)

    rows = []
    for m in data['matches']:
        rows.append({
            "Rank":             m.get("rank"),
            "Employee ID":      m.get("id"),
            "Name":             m.get("name"),
            "Technical (%)":    m.get("technicalScore"),
            "Contextual (%)":   m.get("contextualScore"),
            "Combined (%)":     m.get("combinedScore"),
            "Label":            m.get("label"),
        })

    df = pd.DataFrame(rows)
    buf = io.StringIO()
    df.to_csv(buf, index=False)

    return send_file(
        io.BytesIO(buf.getvalue().encode()),
        mimetype='text/csv',
        as_attachment=True,
        download_name=f'role_matches_{report_id}.csv'
    )


@app.route('/status')
def status():
    return jsonify({
        "openai_key":      api_key_configured(),
        "embedding_model": EMBEDDING_MODEL,
        "cv_model":        CV_CHAT_MODEL,
        "cached_embeddings": len(get_embedding_service().cache),
        "profiles":        {k: v["label"] for k, v in WEIGHT_PROFILES.items()},
    })


if __name__ == '__main__':
    logger.info("PathExplorer matching service on http://127.0.0.1:%d (OpenAI key: %s)",
                PORT, "yes" if api_key_configured() else "no, local fallbacks active")
    app.run(debug=False, host="0.0.0.0", port=PORT)
