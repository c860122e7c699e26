# Copyright (C) 2012-2018  The Visaje developers

# This library is free software; you can redistribute it and/or
# modify it under the terms of the GNU Lesser General Public
# License as published by the Free Software Foundation;
# version 2.1 of the License.

# This library is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the GNU
# Lesser General Public License for more details.

# You should have received a copy of the GNU Lesser General Public
# License along with this library; if not, write to the Free Software
# Foundation, Inc., 51 Franklin Street, Fifth Floor, Boston, MA  02110-1301  USA

"""
Boot key sequences.

A boot key sequence is an ordered list of items sent to the virtual keyboard
of a guest, typically to drive a boot loader menu into an unattended install.
There are three kinds of items:

Key   - a named key such as "esc", "enter" or "f6"
Text  - a literal string that is typed character by character
Delay - a pause, in milliseconds, before the next item is sent

For convenience, normalize() also accepts a plain int as a Delay and a plain
str as Text, so that a sequence can be written as

  [Key("esc"), 500, "auto url=http://10.0.2.2/preseed.cfg", Key("enter")]

Keys are translated to Linux input keycodes, which is the keycode set that
libvirt's virDomainSendKey() understands as VIR_KEYCODE_SET_LINUX.
"""

import visaje.VisajeException

KEY_LEFTSHIFT = 42

# named (non-printing) keys
_named_keys = {
    'esc': 1,
    'escape': 1,
    'backspace': 14,
    'tab': 15,
    'enter': 28,
    'return': 28,
    'space': 57,
    'f1': 59,
    'f2': 60,
    'f3': 61,
    'f4': 62,
    'f5': 63,
    'f6': 64,
    'f7': 65,
    'f8': 66,
    'f9': 67,
    'f10': 68,
    'f11': 87,
    'f12': 88,
    'home': 102,
    'up': 103,
    'pageup': 104,
    'left': 105,
    'right': 106,
    'end': 107,
    'down': 108,
    'pagedown': 109,
    'insert': 110,
    'delete': 111,
}

# printable characters that need no modifier
_plain_chars = {
    '1': 2, '2': 3, '3': 4, '4': 5, '5': 6, '6': 7, '7': 8, '8': 9, '9': 10,
    '0': 11, '-': 12, '=': 13, '\t': 15,
    'q': 16, 'w': 17, 'e': 18, 'r': 19, 't': 20, 'y': 21, 'u': 22, 'i': 23,
    'o': 24, 'p': 25, '[': 26, ']': 27, '\n': 28,
    'a': 30, 's': 31, 'd': 32, 'f': 33, 'g': 34, 'h': 35, 'j': 36, 'k': 37,
    'l': 38, ';': 39, "'": 40, '`': 41, '\\': 43,
    'z': 44, 'x': 45, 'c': 46, 'v': 47, 'b': 48, 'n': 49, 'm': 50,
    ',': 51, '.': 52, '/': 53, ' ': 57,
}

# printable characters typed with shift held, mapped to the unshifted one
_shifted_chars = {
    '!': '1', '@': '2', '#': '3', '$': '4', '%': '5', '^': '6', '&': '7',
    '*': '8', '(': '9', ')': '0', '_': '-', '+': '=', '{': '[', '}': ']',
    ':': ';', '"': "'", '~': '`', '|': '\\', '<': ',', '>': '.', '?': '/',
}


class Key(object):
    """
    A single named key press.
    """
    def __init__(self, symbol):
        if not isinstance(symbol, str) or symbol.lower() not in _named_keys:
            raise visaje.VisajeException.ConfigurationError("Unknown key '%s' in boot key sequence" % (symbol))
        self.symbol = symbol.lower()

    def __eq__(self, other):
        return isinstance(other, Key) and other.symbol == self.symbol

    def __hash__(self):
        return hash((Key, self.symbol))

    def __repr__(self):
        return "Key(%r)" % (self.symbol)


class Text(object):
    """
    A literal string to be typed.
    """
    def __init__(self, text):
        self.text = text

    def __eq__(self, other):
        return isinstance(other, Text) and other.text == self.text

    def __hash__(self):
        return hash((Text, self.text))

    def __repr__(self):
        return "Text(%r)" % (self.text)


class Delay(object):
    """
    A pause between two items, in milliseconds.
    """
    def __init__(self, milliseconds):
        if milliseconds < 0:
            raise visaje.VisajeException.ConfigurationError("Boot key delay must not be negative, got %s" % (milliseconds))
        self.milliseconds = milliseconds

    def __eq__(self, other):
        return isinstance(other, Delay) and other.milliseconds == self.milliseconds

    def __hash__(self):
        return hash((Delay, self.milliseconds))

    def __repr__(self):
        return "Delay(%r)" % (self.milliseconds)


def normalize(sequence):
    """
    Function to turn a boot key sequence into a list of Key, Text and Delay
    objects.  Plain ints become Delays and plain strs become Text; anything
    else raises a ConfigurationError.
    """
    if sequence is None:
        raise visaje.VisajeException.ConfigurationError("A boot key sequence is required")

    items = []
    for item in sequence:
        if isinstance(item, (Key, Text, Delay)):
            items.append(item)
        elif isinstance(item, bool):
            raise visaje.VisajeException.ConfigurationError("Invalid boot key sequence item %r" % (item))
        elif isinstance(item, int):
            items.append(Delay(item))
        elif isinstance(item, str):
            items.append(Text(item))
        else:
            raise visaje.VisajeException.ConfigurationError("Invalid boot key sequence item %r" % (item))

    return items


def _char_keycodes(char):
    if char in _plain_chars:
        return [_plain_chars[char]]
    if char in _shifted_chars:
        return [KEY_LEFTSHIFT, _plain_chars[_shifted_chars[char]]]
    if char.isupper() and char.lower() in _plain_chars:
        return [KEY_LEFTSHIFT, _plain_chars[char.lower()]]
    raise visaje.VisajeException.ConfigurationError("Character %r cannot be typed on the guest keyboard" % (char))


def keycodes_for(item):
    """
    Function to translate a Key or Text item into a list of chords.  Each
    chord is a list of keycodes that are pressed together (modifier first).
    Delays have no keycodes and translate to an empty list.
    """
    if isinstance(item, Key):
        return [[_named_keys[item.symbol]]]
    if isinstance(item, Text):
        return [_char_keycodes(char) for char in item.text]
    return []
