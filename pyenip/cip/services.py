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

from ..map import EnumMap

__all__ = [
    "EncapsulationCommands",
    "Services",
    "ClassCode",
]


class EncapsulationCommands(EnumMap):
    nop = 0x0000
    list_services = 0x0004
    list_identity = 0x0063
    list_interfaces = 0x0064
    register_session = 0x0065
    unregister_session = 0x0066
    send_rr_data = 0x006F
    send_unit_data = 0x0070


class Services(EnumMap):
    # Common CIP Services
    get_attributes_all = 0x01
    set_attributes_all = 0x02
    get_attribute_list = 0x03
    reset = 0x05
    get_attribute_single = 0x0E
    set_attribute_single = 0x10
    find_next_object_instance = 0x11

    # Logix tag services
    read_tag = 0x4C
    write_tag = 0x4D

    @classmethod
    def reply_code(cls, service: int) -> int:
        """Reply service code for a request service (high bit set)"""
        return service | 0x80


class ClassCode(EnumMap):
    identity_object = 0x01
    message_router = 0x02
    connection_manager = 0x06
    symbol_object = 0x6B
    template_object = 0x6C
