"""Namespace reserved for export backends; it holds none at present."""