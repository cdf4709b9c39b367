from __future__ import annotations

import io
import zipfile
from pathlib import Path
from typing import Callable, Dict

import pytest

from sigsleuth.signatures import (
    ContainerSignatureDatabase,
    SignatureDatabase,
    load_container_signature_file,
    load_signature_file,
)

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00\x00\x00\rIHDR" + b"\x00" * 32
OLE2_HEADER = bytes.fromhex("D0CF11E0A1B11AE1") + b"\x00" * 504
PDF_BYTES = b"%PDF-1.4\n1 0 obj\n<< >>\nendobj\ntrailer\n%%EOF\n"
OOXML_CONTENT_TYPES = (
    b'<?xml version="1.0"?><Types><Override PartName="/word/document.xml"/></Types>'
)

SIGNATURE_XML = """<?xml version="1.0" encoding="UTF-8"?>
<FFSignatureFile xmlns="http://www.nationalarchives.gov.uk/pronom/SignatureFile" Version="70">
  <InternalSignatureCollection>
    <InternalSignature ID="1" Specificity="Specific">
      <ByteSequence Reference="BOFoffset">
        <SubSequence Position="1" SubSeqMinOffset="0" SubSeqMaxOffset="0">
          <Sequence>89504E470D0A1A0A</Sequence>
        </SubSequence>
      </ByteSequence>
    </InternalSignature>
    <InternalSignature ID="2">
      <ByteSequence Reference="BOFoffset">
        <SubSequence Position="1" SubSeqMinOffset="0">
          <Sequence>504B0304</Sequence>
        </SubSequence>
      </ByteSequence>
    </InternalSignature>
    <InternalSignature ID="3">
      <ByteSequence Reference="BOFoffset">
        <SubSequence Position="1">
          <Sequence>D0CF11E0A1B11AE1</Sequence>
        </SubSequence>
      </ByteSequence>
    </InternalSignature>
    <InternalSignature ID="4">
      <ByteSequence Reference="BOFoffset">
        <SubSequence Position="1"><Sequence>'%PDF-1.4'</Sequence></SubSequence>
      </ByteSequence>
      <ByteSequence Reference="EOFoffset">
        <SubSequence Position="1" SubSeqMinOffset="0" SubSeqMaxOffset="2">
          <Sequence>'%%EOF'</Sequence>
        </SubSequence>
      </ByteSequence>
    </InternalSignature>
    <InternalSignature ID="5">
      <ByteSequence Reference="BOFoffset">
        <SubSequence Position="1"><Sequence>'%PDF'</Sequence></SubSequence>
      </ByteSequence>
    </InternalSignature>
    <InternalSignature ID="6">
      <ByteSequence Reference="Variable">
        <SubSequence Position="1"><Sequence>'SIGSLEUTH-MARKER'</Sequence></SubSequence>
      </ByteSequence>
    </InternalSignature>
  </InternalSignatureCollection>
  <FileFormatCollection>
    <FileFormat ID="1" Name="Portable Network Graphics" PUID="fmt/11" Version="1.0" MIMEType="image/png">
      <InternalSignatureID>1</InternalSignatureID>
      <Extension>png</Extension>
    </FileFormat>
    <FileFormat ID="2" Name="ZIP Format" PUID="x-fmt/263" MIMEType="application/zip">
      <InternalSignatureID>2</InternalSignatureID>
      <Extension>zip</Extension>
    </FileFormat>
    <FileFormat ID="3" Name="OLE2 Compound Document Format" PUID="fmt/111">
      <InternalSignatureID>3</InternalSignatureID>
    </FileFormat>
    <FileFormat ID="4" Name="Acrobat PDF 1.4 - Portable Document Format" PUID="fmt/18" Version="1.4" MIMEType="application/pdf">
      <InternalSignatureID>4</InternalSignatureID>
      <Extension>pdf</Extension>
      <HasPriorityOverFileFormatID>9</HasPriorityOverFileFormatID>
    </FileFormat>
    <FileFormat ID="5" Name="Marker Document" PUID="fmt/5000" MIMEType="vnd.sigsleuth.marker">
      <InternalSignatureID>6</InternalSignatureID>
    </FileFormat>
    <FileFormat ID="6" Name="Plain Text File" PUID="x-fmt/111">
      <Extension>txt</Extension>
    </FileFormat>
    <FileFormat ID="7" Name="Microsoft Word for Windows" PUID="fmt/412" Version="2007 onwards" MIMEType="application/vnd.openxmlformats-officedocument.wordprocessingml.document">
      <Extension>docx</Extension>
    </FileFormat>
    <FileFormat ID="8" Name="Microsoft Word Document" PUID="fmt/40" Version="97-2003" MIMEType="application/msword">
      <Extension>doc</Extension>
    </FileFormat>
    <FileFormat ID="9" Name="Acrobat PDF - Portable Document Format" PUID="fmt/14" MIMEType="application/pdf">
      <InternalSignatureID>5</InternalSignatureID>
    </FileFormat>
  </FileFormatCollection>
</FFSignatureFile>
"""

CONTAINER_XML = """<?xml version="1.0" encoding="UTF-8"?>
<ContainerSignatureMapping schemaVersion="1.0" signatureVersion="20">
  <ContainerSignatures>
    <ContainerSignature Id="1000" ContainerType="ZIP">
      <Description>Microsoft Word OOXML</Description>
      <Files>
        <File>
          <Path>[Content_Types].xml</Path>
          <BinarySignatures>
            <InternalSignatureCollection>
              <InternalSignature ID="1000">
                <ByteSequence Reference="Variable">
                  <SubSequence Position="1"><Sequence>'/word/document.xml'</Sequence></SubSequence>
                </ByteSequence>
              </InternalSignature>
            </InternalSignatureCollection>
          </BinarySignatures>
        </File>
        <File><Path>word/document.xml</Path></File>
      </Files>
    </ContainerSignature>
    <ContainerSignature Id="1010" ContainerType="ZIP">
      <Description>Sample Bundle</Description>
      <Files>
        <File><Path>bundle/manifest.txt</Path></File>
      </Files>
    </ContainerSignature>
    <ContainerSignature Id="2000" ContainerType="OLE2">
      <Description>Microsoft Word 97-2003</Description>
      <Files>
        <File><Path>WordDocument</Path></File>
      </Files>
    </ContainerSignature>
  </ContainerSignatures>
  <FileFormatMappings>
    <FileFormatMapping signatureId="1000" Puid="fmt/412"/>
    <FileFormatMapping signatureId="1010" Puid="fmt/9999"/>
    <FileFormatMapping signatureId="2000" Puid="fmt/40"/>
  </FileFormatMappings>
  <TriggerPuids>
    <TriggerPuid ContainerType="ZIP" Puid="x-fmt/263"/>
    <TriggerPuid ContainerType="OLE2" Puid="fmt/111"/>
  </TriggerPuids>
</ContainerSignatureMapping>
"""


def zip_bytes(entries: Dict[str, bytes]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for name, content in entries.items():
            archive.writestr(name, content)
    return buffer.getvalue()


@pytest.fixture
def signature_file(tmp_path: Path) -> Path:
    path = tmp_path / "DROID_SignatureFile_V70.xml"
    path.write_text(SIGNATURE_XML, encoding="utf-8")
    return path


@pytest.fixture
def container_signature_file(tmp_path: Path) -> Path:
    path = tmp_path / "container-signature-20.xml"
    path.write_text(CONTAINER_XML, encoding="utf-8")
    return path


@pytest.fixture
def signature_database(signature_file: Path) -> SignatureDatabase:
    return load_signature_file(signature_file)


@pytest.fixture
def container_database(container_signature_file: Path) -> ContainerSignatureDatabase:
    return load_container_signature_file(container_signature_file)


@pytest.fixture
def write_file(tmp_path: Path) -> Callable[[str, bytes], Path]:
    def _write(name: str, content: bytes) -> Path:
        target = tmp_path / "samples" / name
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)
        return target

    return _write


@pytest.fixture
def docx_bytes() -> bytes:
    return zip_bytes(
        {
            "[Content_Types].xml": OOXML_CONTENT_TYPES,
            "word/document.xml": b"<w:document/>",
        }
    )


@pytest.fixture
def make_zip() -> Callable[[Dict[str, bytes]], bytes]:
    return zip_bytes


@pytest.fixture
def png_bytes() -> bytes:
    return PNG_BYTES


@pytest.fixture
def pdf_bytes() -> bytes:
    return PDF_BYTES


@pytest.fixture
def ole2_bytes() -> bytes:
    return OLE2_HEADER
