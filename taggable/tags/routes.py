"""
Tag routes and controllers
"""
from flask import Blueprint, current_app, jsonify

# Create Blueprint
tags_bp = Blueprint('tags', __name__, url_prefix='/api/tags')


def get_tagged():
    """The TaggedCollection registered on the application"""
    return current_app.extensions['taggable']


@tags_bp.route('', methods=['GET'])
def get_tags():
    """Get all tags with their counts and uniqueness"""
    return jsonify(get_tagged().tag_entries())


@tags_bp.route('/names', methods=['GET'])
def get_tag_names():
    """Get the sorted list of distinct tags"""
    return jsonify(get_tagged().tags())


@tags_bp.route('/reindex', methods=['POST'])
def reindex_tags():
    """Rebuild the tag index now"""
    written = get_tagged().reindex()
    return jsonify({'success': True, 'tags': written})


@tags_bp.route('/entry/<path:tag>', methods=['GET'])
def get_tag(tag):
    """Get one tag's count and uniqueness"""
    return jsonify(get_tagged().tag_entry(tag))
