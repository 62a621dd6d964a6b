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

from .util import FrameBuffer, PacketLazyFormatter, print_bytes_msg
from .ethernetip import (
    EIPHeader,
    SendRRDataReply,
    InterfaceHandleFormat,
    build_header,
    parse_header,
    build_register_session,
    parse_register_session_response,
    build_unregister_session,
    build_send_rr_data,
    parse_send_rr_data_request,
    build_send_rr_data_reply,
    parse_send_rr_data_response,
    build_list_identity_request,
    build_list_identity_reply,
    parse_list_identity_response,
    check_status,
)
from .logix import (
    ReadTagReply,
    FindNextReply,
    WriteTagData,
    build_read_tag_request,
    parse_read_tag_response,
    build_read_tag_reply_data,
    build_write_tag_request,
    parse_write_tag_data,
    parse_write_tag_response,
    build_get_attributes_all_request,
    parse_identity_attributes,
    build_find_next_request,
    parse_find_next_response,
)
