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

__all__ = [
    "EnumMap",
]


class MapMeta(type):
    def __new__(mcs, name, bases, classdict):
        enumcls = super().__new__(mcs, name, bases, classdict)

        members = {}
        for base in reversed(enumcls.__mro__[1:]):
            members.update(getattr(base, "_members_by_name_", {}))
        members.update(
            {
                key.lower(): value
                for key, value in classdict.items()
                if not key.startswith("_")
                and not isinstance(value, (classmethod, staticmethod, property))
            }
        )

        enumcls._members_by_name_ = members
        # first name wins when two members share a value (aliases)
        by_value = {}
        for key, value in members.items():
            by_value.setdefault(value, key)
        enumcls._members_by_value_ = by_value

        return enumcls

    def __getitem__(cls, item):
        if isinstance(item, str):
            return cls._members_by_name_[item.lower()]
        return cls._members_by_value_[item]

    def get(cls, item, default=None):
        try:
            return cls[item]
        except (KeyError, TypeError):
            return default

    def __contains__(cls, item):
        if isinstance(item, str):
            return item.lower() in cls._members_by_name_
        return item in cls._members_by_value_

    def __iter__(cls):
        return iter(cls._members_by_name_.items())

    @property
    def attributes(cls):
        return list(cls._members_by_name_)


class EnumMap(metaclass=MapMeta):
    """
    A simple enum-like class that allows dict-like lookups in both directions.

    Attribute access returns the raw value, item access by name (case-insensitive)
    returns the value and item access by value returns the member name:

    class Commands(EnumMap):
        register_session = 0x65

    >>> Commands.register_session
    101
    >>> Commands['REGISTER_SESSION']
    101
    >>> Commands[0x65]
    'register_session'

    Values stay plain ``int``/``bytes``/``str`` so they can be used directly on the wire.
    Only meant for attribute-only subclasses.
    """

    ...
