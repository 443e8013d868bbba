"""
Cardboard core package.

Boards hold ordered cards whose rich-text bodies may mention users. The
richtext subpackage exposes the record dataclasses, the user directory and
board repositories, the attachment codec used to sign and serialize mention
references, the mention resolver itself, and a Whoosh-backed card index.
"""
