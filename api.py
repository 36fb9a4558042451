import logging
from typing import Any, Dict, Optional

from flask import Flask, abort, jsonify, request

from config import Settings, configure_logging
from editor_routes import node_editor_path
from errors import (
    CannotDeleteRoot,
    InvariantViolation,
    NotFoundError,
    PersistenceError,
)
from models import parse_node_draft
from progress_overlay import skill_tree_saved_data, unit_overlay
from progress_tracker import ProgressTracker
from tree_editor import CurriculumEditor
from tree_locator import find_by_id
from unit_storage import UnitStorage

logger = logging.getLogger(__name__)


def _json_body(*required: str) -> Dict[str, Any]:
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        abort(400, description="Request body must be a JSON object")
    missing = [key for key in required if key not in body]
    if missing:
        abort(400, description=f"Missing fields: {', '.join(missing)}")
    return body


def create_app(settings: Optional[Settings] = None,
               storage: Optional[UnitStorage] = None,
               tracker: Optional[ProgressTracker] = None,
               editor: Optional[CurriculumEditor] = None) -> Flask:
    """Build the HTTP surface of the curriculum engine"""
    settings = settings or Settings.from_env()
    storage = storage or UnitStorage(settings.units_dir, settings.lock_timeout)
    tracker = tracker or ProgressTracker(settings.progress_dir)
    editor = editor or CurriculumEditor(storage)

    app = Flask(__name__)

    @app.errorhandler(NotFoundError)
    def handle_not_found(e):
        return jsonify({"message": str(e)}), 404

    @app.errorhandler(CannotDeleteRoot)
    def handle_root_delete(e):
        return jsonify({"message": str(e)}), 400

    @app.errorhandler(InvariantViolation)
    def handle_invariant(e):
        logger.warning(f"Rejected edit: {str(e)}")
        return jsonify({"message": str(e)}), 422

    @app.errorhandler(PersistenceError)
    def handle_persistence(e):
        logger.error(f"Storage failure: {str(e)}")
        return jsonify({"message": str(e)}), 503

    @app.errorhandler(400)
    def handle_bad_request(e):
        return jsonify({"message": e.description}), 400

    @app.route('/units', methods=['GET'])
    def list_units():
        units = storage.list_units()
        return jsonify([{"id": unit_id, **info} for unit_id, info in units.items()])

    @app.route('/units/<unit_id>', methods=['GET'])
    def get_unit(unit_id):
        return jsonify(storage.load_unit(unit_id).model_dump(mode='json'))

    @app.route('/units/<unit_id>/nodes/<node_id>', methods=['GET'])
    def get_node(unit_id, node_id):
        node = find_by_id(storage.load(unit_id), node_id)
        return jsonify({
            "id": node.id,
            "type": node.type.value,
            "title": node.title,
            "content": node.tooltip.content,
        })

    def _add_node(unit_id: str, insert: bool):
        body = _json_body('targetNodeId', 'newNode')
        draft = parse_node_draft(body['newNode'], body.get('inputSubType'))
        if insert:
            new_node = editor.insert_between(unit_id, body['targetNodeId'], draft)
        else:
            new_node = editor.append_child(unit_id, body['targetNodeId'], draft)
        logger.info(f"Added node {new_node.id} to unit {unit_id}")
        return jsonify({
            "newNode": new_node.model_dump(mode='json'),
            "editorPath": node_editor_path(new_node),
        }), 201

    @app.route('/units/<unit_id>/append', methods=['POST'])
    def append_node(unit_id):
        return _add_node(unit_id, insert=False)

    @app.route('/units/<unit_id>/insert', methods=['POST'])
    def insert_node(unit_id):
        return _add_node(unit_id, insert=True)

    @app.route('/units/<unit_id>/delete', methods=['POST'])
    def delete_node(unit_id):
        body = _json_body('nodeId')
        editor.delete_node(unit_id, body['nodeId'])
        logger.info(f"Deleted node {body['nodeId']} from unit {unit_id}")
        return jsonify({"message": "Node deleted"}), 200

    @app.route('/units/<unit_id>/updateNodeDetails', methods=['POST'])
    def update_node_details(unit_id):
        body = _json_body('nodeId', 'newTitle')
        if not isinstance(body['newTitle'], str):
            abort(400, description="newTitle must be a string")
        if body.get('newDescription') is not None and not isinstance(body['newDescription'], str):
            abort(400, description="newDescription must be a string")
        node = editor.relabel_node(unit_id, body['nodeId'], body['newTitle'], body.get('newDescription'))
        return jsonify({"node": node.model_dump(mode='json')}), 200

    @app.route('/units/<unit_id>/progress/<learner_id>', methods=['GET'])
    def get_progress(unit_id, learner_id):
        try:
            overlay = unit_overlay(storage, tracker, unit_id, learner_id)
            completed = sorted(tracker.load_completed(learner_id, unit_id))
        except ValueError as e:
            abort(400, description=str(e))
        return jsonify({
            "completedLessons": completed,
            "data": [node.model_dump(mode='json') for node in overlay],
            "savedData": skill_tree_saved_data(overlay),
        })

    @app.route('/units/<unit_id>/progress/<learner_id>', methods=['POST'])
    def complete_node(unit_id, learner_id):
        body = _json_body('nodeId')
        find_by_id(storage.load(unit_id), body['nodeId'])
        try:
            progress_data = tracker.mark_completed(learner_id, unit_id, body['nodeId'])
        except ValueError as e:
            abort(400, description=str(e))
        return jsonify({"completedLessons": progress_data['completed_lessons']}), 200

    return app


if __name__ == "__main__":
    settings = Settings.from_env()
    configure_logging(settings)
    create_app(settings).run()
