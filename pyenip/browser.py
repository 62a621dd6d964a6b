# -*- coding: utf-8 -*-
#
# Copyright (c) 2021 Ian Ottoway <ian@ottoway.dev>
# Copyright (c) 2014 Agostino Ruscito <ruscito@gmail.com>
#
# Permission is hereby granted, free of charge, to any person obtaining a copy
# of this software and associated documentation files (the "Software"), to deal
# in the Software without restriction, including without limitation the rights
# to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
# copies of the Software, and to permit persons to whom the Software is
# furnished to do so, subject to the following conditions:
#
# The above copyright notice and this permission notice shall be included in all
# copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
# IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
# FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
# AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
# LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
# OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
# SOFTWARE.
#

"""
Best-effort helpers for browsing tags and reading the device identity.

Many targets answer Find_Next and Get_Attributes_All with "service not supported",
that is an expected outcome and ends browsing with whatever was found so far.
"""

import logging
from typing import Any, Dict, List

from .cip import ClassCode, get_data_type
from .connection import EIPConnection
from .const import MAX_LIST_TAGS, CIP_SERVICE_NOT_SUPPORTED
from .exceptions import CipStatusError, CommError, DataError, PyenipError, UnsupportedTypeError
from .packets import (
    build_find_next_request,
    parse_find_next_response,
    build_get_attributes_all_request,
    parse_identity_attributes,
    parse_send_rr_data_response,
    build_read_tag_request,
    parse_read_tag_response,
)

__all__ = ["browse_tags", "browse_tags_detailed", "get_tag_info", "get_device_info"]

_log = logging.getLogger(__name__)

MAX_CONSECUTIVE_ERRORS = 10


def browse_tags(connection: EIPConnection, max_tags: int = MAX_LIST_TAGS) -> List[Dict[str, Any]]:
    """
    Walks the Symbol object instances with Find_Next, returning a ``dict`` with
    ``name``, ``instance_id`` and ``class_id`` for each tag found.
    """
    tags = []
    last_name = ""
    errors = 0

    _log.debug("Starting tag browse...")
    while len(tags) < max_tags and errors < MAX_CONSECUTIVE_ERRORS:
        request = build_find_next_request(connection.session_handle, ClassCode.symbol_object, 0, last_name)
        try:
            found = parse_find_next_response(connection.send_request(request))
        except CipStatusError as err:
            if err.code == CIP_SERVICE_NOT_SUPPORTED:
                _log.info("Target does not support Find_Next, tag browsing unavailable")
            else:
                _log.debug(f"Browse ended: {err}")
            break
        except DataError as err:
            errors += 1
            _log.warning(f"Invalid Find_Next reply ({errors}/{MAX_CONSECUTIVE_ERRORS}): {err}")
            continue

        if found is None:
            _log.debug("No more tags found")
            break
        if not found.name:
            errors += 1
            continue
        if found.name == last_name:
            break

        tags.append({"name": found.name, "instance_id": found.instance_id, "class_id": found.class_id})
        last_name = found.name
        errors = 0
        _log.debug(f"Found tag: {found.name} (instance {found.instance_id})")

    _log.info(f"Browse complete. Found {len(tags)} tag(s)")
    return tags


def get_tag_info(connection: EIPConnection, tag_name: str, **read_options) -> Dict[str, Any]:
    """
    Reads ``tag_name`` once and reports its data type and element count
    """
    request = build_read_tag_request(connection.session_handle, tag_name, 1, **read_options)
    reply = parse_read_tag_response(connection.send_request(request))
    try:
        type_name = get_data_type(reply.data_type).__name__
    except UnsupportedTypeError:
        type_name = None

    return {
        "name": tag_name,
        "data_type": reply.data_type,
        "data_type_name": type_name,
        "element_count": reply.element_count,
        "is_array": reply.element_count > 1,
    }


def browse_tags_detailed(connection: EIPConnection, max_tags: int = MAX_LIST_TAGS) -> List[Dict[str, Any]]:
    """
    ``browse_tags`` plus the type information from ``get_tag_info`` where the tag can be read
    """
    detailed = []
    for tag in browse_tags(connection, max_tags):
        try:
            info = get_tag_info(connection, tag["name"])
        except CommError:
            raise
        except PyenipError as err:
            _log.warning(f"Could not get details for tag {tag['name']}: {err}")
            detailed.append(tag)
        else:
            detailed.append({**tag, **info})

    return detailed


def get_device_info(connection: EIPConnection) -> Dict[str, Any]:
    """
    Reads the Identity object (class 0x01, instance 1) with Get_Attributes_All
    """
    request = build_get_attributes_all_request(connection.session_handle, ClassCode.identity_object, 1)
    reply = parse_send_rr_data_response(connection.send_request(request))
    attrs = parse_identity_attributes(reply.data)

    return {
        "vendor_id": attrs.get("vendor_id"),
        "device_type": attrs.get("device_type"),
        "product_code": attrs.get("product_code"),
        "revision": attrs.get("revision", {"major": 0, "minor": 0}),
        "status": attrs.get("status", 0),
        "serial_number": attrs.get("serial_number", 0),
        "product_name": attrs.get("product_name", "Unknown"),
        "state": attrs.get("state", 0),
    }
