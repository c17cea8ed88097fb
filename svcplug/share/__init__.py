"""Context, metadata keys, message records and trace propagation shared by clients and servers."""