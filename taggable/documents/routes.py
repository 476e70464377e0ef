"""
Document routes and controllers
"""
from flask import Blueprint, request, jsonify
from taggable.config.config import logger
from taggable.tags.routes import get_tagged
from taggable.utils.helpers import parse_bool

# Create Blueprint
documents_bp = Blueprint('documents', __name__, url_prefix='/api/documents')

@documents_bp.route('', methods=['GET'])
def get_documents():
    """Get all documents, or the documents matching the tags parameter"""
    tagged = get_tagged()
    tags = request.args.get('tags')
    match = request.args.get('match', 'all')

    if match not in ('any', 'all'):
        return jsonify({'error': "match must be 'any' or 'all'"}), 400

    if tags is None:
        documents = tagged.find()
    elif match == 'any':
        documents = tagged.tagged_with_any(tags)
    else:
        documents = tagged.tagged_with_all(tags)

    return jsonify([document.to_dict() for document in documents])

@documents_bp.route('/<document_id>', methods=['GET'])
def get_document(document_id):
    """Get a specific document by ID"""
    document = get_tagged().get(document_id)
    return jsonify(document.to_dict())

@documents_bp.route('', methods=['POST'])
def create_document():
    """Create a new document"""
    data = request.json
    if not isinstance(data, dict):
        return jsonify({'error': 'A JSON object is required'}), 400

    tagged = get_tagged()
    fields = dict(data)
    fields.pop('_id', None)
    tags = fields.pop(tagged.field_name, None)

    document = tagged.insert(fields, tags=tags)
    return jsonify(document.to_dict()), 201

@documents_bp.route('/<document_id>', methods=['PUT'])
def update_document(document_id):
    """Update a document"""
    data = request.json
    if not isinstance(data, dict) or not data:
        return jsonify({'error': 'No data provided'}), 400

    try:
        document = get_tagged().update(document_id, data)
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    return jsonify(document.to_dict())

@documents_bp.route('/<document_id>', methods=['DELETE'])
def delete_document(document_id):
    """Delete a document"""
    get_tagged().delete(document_id)
    return jsonify({'success': True})

@documents_bp.route('/<document_id>/related', methods=['GET'])
def get_related_documents(document_id):
    """Get documents ranked by the tags they share with this one"""
    try:
        limit = int(request.args.get('limit', 10))
    except ValueError:
        return jsonify({'error': 'limit must be an integer'}), 400
    if limit < 0:
        return jsonify({'error': 'limit must be >= 0'}), 400

    weighted = parse_bool(request.args.get('weighted'))
    tagged = get_tagged()
    document = tagged.get(document_id)

    related = tagged.related_to(document, limit=limit, weigh_by_uniqueness=weighted)
    logger.info(f"Found {len(related)} documents related to {document_id}")
    return jsonify([item.to_dict() for item in related])
